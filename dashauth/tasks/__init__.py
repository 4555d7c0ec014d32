"""
Celery tasks package.

- email_tasks: magic-link and password-reset delivery
"""

from dashauth.tasks import email_tasks

__all__ = ["email_tasks"]
