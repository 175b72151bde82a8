"""
Celery configuration for the validation queue.

Loaded by `celery_app.config_from_object("celeryconfig")` in docguard/tasks/__init__.py.
All broker/result-backend URLs come from environment variables,
defaulting to localhost for local dev.
"""

import os

# ═══════════════════════════════════════════════════════════
#  Broker & Result Backend
# ═══════════════════════════════════════════════════════════

broker_url = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
result_backend = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")

# ═══════════════════════════════════════════════════════════
#  Serialization: JSON only
# ═══════════════════════════════════════════════════════════

task_serializer = "json"
result_serializer = "json"
accept_content = ["json"]

# ═══════════════════════════════════════════════════════════
#  Timezone
# ═══════════════════════════════════════════════════════════

timezone = "UTC"
enable_utc = True

# ═══════════════════════════════════════════════════════════
#  Task Execution
# ═══════════════════════════════════════════════════════════

# Acknowledge tasks AFTER they complete (crash-safe: prevents lost tasks)
task_acks_late = True
task_reject_on_worker_lost = True

# Only prefetch 1 task at a time per worker process
# Prevents one slow pipeline from blocking other tasks
worker_prefetch_multiplier = 1

# A batch is bounded by QUEUE_BATCH_SIZE jobs of at most JOB_TIMEOUT_SECONDS each
task_soft_time_limit = 900    # 15 min: raises SoftTimeLimitExceeded
task_time_limit = 960         # 16 min: hard kill

# ═══════════════════════════════════════════════════════════
#  Result Expiry: 24h
# ═══════════════════════════════════════════════════════════

result_expires = 86400

# ═══════════════════════════════════════════════════════════
#  Worker Settings
# ═══════════════════════════════════════════════════════════

# Restart worker after N tasks (prevents memory leaks from LLM libraries)
worker_max_tasks_per_child = 50

# Disable events by default (reduces Redis load)
# Enable with: celery -A docguard.tasks worker -E
worker_send_task_events = False
task_send_sent_event = False

# ═══════════════════════════════════════════════════════════
#  Task Routes
# ═══════════════════════════════════════════════════════════
# Job retries are owned by the validation queue (backoff + dead letter),
# not by Celery: tasks are never auto-retried.
#   celery -A docguard.tasks worker -Q validation

task_routes = {
    "docguard.tasks.validation_tasks.*": {"queue": "validation"},
}

task_default_queue = "validation"

# ═══════════════════════════════════════════════════════════
#  Beat Schedule (periodic tasks)
# ═══════════════════════════════════════════════════════════
# Beat drains the validation queue once a minute:
#   celery -A docguard.tasks beat

beat_schedule = {
    "process-validation-queue": {
        "task": "docguard.tasks.validation_tasks.process_validation_queue",
        "schedule": 60.0,
        "options": {"expires": 55},
    },
}
