"""
Magic-link token generation.

The default "derived" strategy is a usability obfuscation layer, not a secret:
the alphabetic part of the token is a function of the email address and the
current day-of-month and second-of-minute, padded with non-cryptographic
random characters. Possession of the inbox and the short challenge window are
the actual security boundary. The "random" strategy keeps the same shape and
lifecycle but draws the whole token from secrets. Challenges issued without a
password check (registration, resend, expiry retry) always use secrets.
"""

import random
import secrets
from datetime import datetime, timezone
from typing import Callable, Optional

ALLOWED_CHARS = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789!@$&"
MIN_TOKEN_LENGTH = 30

# Characters that corrupt the plaintext email body the link travels in
FORBIDDEN_CHARS = frozenset(" /\\}{|")


def derive_key_factor(now: datetime) -> int:
    """day-of-month * second-of-minute, divided by 10 when it exceeds 30."""
    key_factor = now.day * now.second
    if key_factor > 30:
        key_factor //= 10
    return key_factor


class MagicLinkGenerator:
    """Builds magic-link challenge ids for an email address."""

    def __init__(
        self,
        secret_key: str,
        strategy: str = "derived",
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        rng: Optional[random.Random] = None,
    ):
        if strategy not in ("derived", "random"):
            raise ValueError(f"unknown magic link strategy: {strategy}")
        self.secret_key = secret_key
        self.strategy = strategy
        self.clock = clock
        self.rng = rng or random.Random()

    def generate(self, email: str, unpredictable: bool = False) -> str:
        """
        Build a challenge id for email.

        unpredictable=True forces a secrets-drawn token whatever the
        strategy; issuers that have not checked a password must use it.
        """
        if unpredictable or self.strategy == "random":
            return secrets.token_urlsafe(32)
        return self._derive(email, self.clock())

    def _derive(self, email: str, now: datetime) -> str:
        key_factor = derive_key_factor(now)

        chars = []
        for position, letter in enumerate(email.upper()):
            if "A" <= letter <= "Z":
                chars.append(ALLOWED_CHARS[(position + key_factor) % len(ALLOWED_CHARS)])

        while len(chars) < MIN_TOKEN_LENGTH:
            chars.append(self.rng.choice(ALLOWED_CHARS))

        return self._sanitize("".join(chars), key_factor)

    def _sanitize(self, token: str, key_factor: int) -> str:
        """Replace characters that would break the email transport."""
        key = self.secret_key.encode("utf-8")
        out = []
        for position, letter in enumerate(token):
            if letter in FORBIDDEN_CHARS:
                key_byte = key[position % len(key)] if key else 0
                letter = chr(((position + key_byte * key_factor) // 2) % 127)
            if letter == "/":
                letter = "_"
            elif letter == "\\":
                letter = "%"
            out.append(letter)
        return "".join(out).replace("\x00", "&")
