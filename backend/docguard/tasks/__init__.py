"""
Celery application for the validation queue.

    celery -A docguard.tasks worker -Q validation
    celery -A docguard.tasks beat
"""

from celery import Celery
from celery.signals import worker_process_init

from docguard.core.config import get_settings
from docguard.core.logging import setup_logging
from docguard.core.tracing import setup_tracing

celery_app = Celery("docguard", include=["docguard.tasks.validation_tasks"])
celery_app.config_from_object("celeryconfig")


@worker_process_init.connect
def configure_worker_process(**kwargs) -> None:
    """Each forked worker process sets up its own logging and tracing."""
    settings = get_settings()
    setup_logging("DEBUG" if settings.APP_ENV == "development" else "INFO")
    setup_tracing(settings)
