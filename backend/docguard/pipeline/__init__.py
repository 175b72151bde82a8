"""
Validation pipeline — step-based orchestrator for one document.

Kept import-light: the engine and steps pull in the database and model
clients, so import them from their modules directly:

    from docguard.pipeline.engine import ValidationPipeline
"""
