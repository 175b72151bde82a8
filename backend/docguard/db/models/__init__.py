"""
Models package — re-exports Base and all models.

Import models here so Alembic's `target_metadata = Base.metadata`
picks up every table automatically.

When adding a new model:
    1. Create `docguard/db/models/<table_name>.py`
    2. Import it here
"""

from docguard.db.models.base import Base
from docguard.db.models.organization import Organization
from docguard.db.models.employee import Employee
from docguard.db.models.storage_config import StorageConfig
from docguard.db.models.document_request import DocumentRequest
from docguard.db.models.document import Document
from docguard.db.models.validation_job import ValidationJob
from docguard.db.models.validation_dead_letter import ValidationDeadLetter
from docguard.db.models.document_validation import DocumentValidation
from docguard.db.models.validation_execution import ValidationExecution

__all__ = [
    "Base",
    "Organization",
    "Employee",
    "StorageConfig",
    "DocumentRequest",
    "Document",
    "ValidationJob",
    "ValidationDeadLetter",
    "DocumentValidation",
    "ValidationExecution",
]
