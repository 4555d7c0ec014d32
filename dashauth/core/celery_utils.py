"""
Queueing Celery tasks from request handlers.

Publishing happens on a small worker pool with a hard deadline. A slow or
absent broker costs a request at most QUEUE_TIMEOUT_SECONDS and a logged
error; it never turns into an authentication failure.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from celery import Task
from kombu import Connection

from dashauth.core.config import get_settings

logger = logging.getLogger(__name__)

QUEUE_TIMEOUT_SECONDS = 5

# Kombu retry policy for a single publish
PUBLISH_RETRY_POLICY = {
    'max_retries': 3,
    'interval_start': 0,
    'interval_step': 0.2,
    'interval_max': 0.2,
}

_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="task_publish")


def _publish(task: Task, args: tuple, kwargs: dict) -> str:
    """Publish on a fresh broker connection and return the task id."""
    with Connection(get_settings().REDIS_URL) as conn:
        result = task.apply_async(
            args=args,
            kwargs=kwargs,
            connection=conn,
            retry=True,
            retry_policy=PUBLISH_RETRY_POLICY,
        )
        return result.id


def queue_task_safely(task: Task, *args, **kwargs) -> bool:
    """
    Queue a task, reporting failure instead of raising.

    Returns:
        bool: True once the broker accepted the message

    Example:
        queue_task_safely(send_magic_link_email_task, to_email=email, token=token, user_name="Maria")
    """
    future = _executor.submit(_publish, task, args, kwargs)
    try:
        task_id = future.result(timeout=QUEUE_TIMEOUT_SECONDS)
    except FutureTimeoutError:
        logger.error(f"Timed out after {QUEUE_TIMEOUT_SECONDS}s queueing {task.name}")
        return False
    except Exception as e:
        logger.error(f"Failed to queue task {task.name}: {e.__class__.__name__}: {e}")
        return False

    logger.info(f"Task {task.name} queued: {task_id}")
    return True


def broker_reachable(timeout: float = 2.0) -> bool:
    """Check the broker once; used by the detailed health check."""
    try:
        with Connection(get_settings().REDIS_URL, connect_timeout=timeout) as conn:
            conn.ensure_connection(max_retries=1, timeout=timeout)
        return True
    except Exception as e:
        logger.warning(f"Broker unreachable: {e.__class__.__name__}")
        return False
