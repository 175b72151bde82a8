"""Shared constants and enums used across the application."""

from enum import StrEnum


class JobStatus(StrEnum):
    """Lifecycle of a queued validation job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    DEAD_LETTER = "dead_letter"


class PipelineStatus(StrEnum):
    """Overall status of a validation execution."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMEOUT = "timeout"


class StepStatus(StrEnum):
    """Status of an individual pipeline step."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class ExpiryStatus(StrEnum):
    """Expiry classification of a document."""

    EXPIRED = "expired"
    EXPIRING_SOON = "expiring_soon"
    EXPIRING_LATER = "expiring_later"
    NO_EXPIRY = "no_expiry"


class OverallStatus(StrEnum):
    """Decision outcome for a validated document."""

    VERIFIED = "verified"
    NEEDS_REVIEW = "needs_review"
    REJECTED = "rejected"


class ReviewPriority(StrEnum):
    """Priority of the human review a document needs."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DocumentValidationStatus(StrEnum):
    """Externally visible validation status stored on the document."""

    PENDING = "pending"
    VALIDATING = "validating"
    VERIFIED = "verified"
    NEEDS_REVIEW = "needs_review"
    REJECTED = "rejected"


class DocumentStatus(StrEnum):
    """Document lifecycle status."""

    RECEIVED = "received"
    PROCESSED = "processed"
    VERIFIED = "verified"
    REJECTED = "rejected"
    NEEDS_REVIEW = "needs_review"


class StorageProvider(StrEnum):
    """Object-storage backends a document can live in."""

    SUPABASE = "supabase"
    ONEDRIVE = "onedrive"
    GOOGLE_DRIVE = "google_drive"


class TriggerSource(StrEnum):
    """Who started a validation execution."""

    QUEUE = "queue"
    MANUAL = "manual"


class DocumentType(StrEnum):
    """Document types the classifier may return."""

    PASSPORT = "passport"
    DRIVERS_LICENSE = "drivers_license"
    ID_CARD = "id_card"
    BIRTH_CERTIFICATE = "birth_certificate"
    VISA = "visa"
    OTHER = "other"


# Days ahead of expiry at which a document counts as expiring soon (inclusive).
EXPIRING_SOON_DAYS = 90
