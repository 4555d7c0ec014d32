"""
Celery application configuration.

Redis is both the message broker and result backend. Outbound email is sent
from worker processes so the request path never waits on SES.
"""

from celery import Celery
from dashauth.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "dashauth_worker",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Task behavior
    task_time_limit=120,
    task_soft_time_limit=90,

    # Result backend
    result_expires=3600,  # Results expire after 1 hour

    # Worker behavior
    worker_prefetch_multiplier=1,
)

celery_app.autodiscover_tasks(['dashauth'])
