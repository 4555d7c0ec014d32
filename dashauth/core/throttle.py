"""
Per-IP failed-attempt throttle with lockout.

Policy:
- first failure from an IP creates its record with count 1
- failures inside an active lockout window are ignored, so the window
  cannot be extended indefinitely
- the failure that would bring the count to the threshold opens a lockout
  window and resets the count to 0
- otherwise the count is incremented

The read-then-write sequence is not atomic. Concurrent failures from one IP
can under-count; that favours availability and is accepted.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable
from sqlalchemy.orm import Session

from dashauth.crud import account as crud
from dashauth.models.login_attempt import LoginAttempt

logger = logging.getLogger(__name__)


class AttemptThrottle:

    def __init__(
        self,
        db: Session,
        max_attempts: int = 5,
        lockout: timedelta = timedelta(minutes=10),
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.db = db
        self.max_attempts = max_attempts
        self.lockout = lockout
        self.clock = clock

    def can_proceed(self, ip_address: str) -> bool:
        """False only while the IP is inside an active lockout window."""
        attempt = crud.get_attempt(self.db, ip_address)
        if attempt is None or attempt.locked_until is None:
            return True
        return attempt.locked_until <= self.clock()

    def record_failure(self, ip_address: str, email: str = "") -> None:
        now = self.clock()
        attempt = crud.get_attempt(self.db, ip_address)

        if attempt is None:
            crud.put_attempt(self.db, LoginAttempt(
                ip_address=ip_address,
                email=email,
                attempts=1,
                last_attempt_at=now,
                locked_until=None,
            ))
            return

        attempt.email = email

        if attempt.locked_until is not None and attempt.locked_until > now:
            crud.put_attempt(self.db, attempt)
            return

        if attempt.attempts + 1 >= self.max_attempts:
            attempt.attempts = 0
            attempt.locked_until = now + self.lockout
            logger.warning(f"Lockout opened for {ip_address} until {attempt.locked_until.isoformat()}")
        else:
            attempt.attempts += 1
        attempt.last_attempt_at = now
        crud.put_attempt(self.db, attempt)

    def reset(self, ip_address: str) -> None:
        """Clear the counter after a successful attempt. An active lockout is left in place."""
        attempt = crud.get_attempt(self.db, ip_address)
        if attempt is None or attempt.attempts == 0:
            return
        attempt.attempts = 0
        crud.put_attempt(self.db, attempt)
