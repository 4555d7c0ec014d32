"""
Registration field validation.

Every rule runs and every problem is collected; nothing fails fast.
"""

import re
from datetime import date, datetime
from typing import List, Mapping, Optional

from dashauth.core.errors import FieldError

REQUIRED_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "password",
    "birthdate",
    "cpf",
    "phone",
    "address",
    "city",
    "state",
    "zip_code",
    "country",
)

MINIMUM_AGE = 18
PASSWORD_MAX_BYTES = 72

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
# Brazilian format: (11) 91234-5678 or (11) 1234-5678
PHONE_RE = re.compile(r"^\(\d{2}\)\s\d{4,5}-\d{4}$")
DIGIT_RE = re.compile(r"\d")
SPECIAL_RE = re.compile(r"[@$!%*?&]")


def is_valid_name(name: str) -> bool:
    return bool(name) and not DIGIT_RE.search(name)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def is_valid_phone(phone: str) -> bool:
    return bool(PHONE_RE.match(phone))


def password_problems(password: str) -> List[str]:
    """Return the unmet password rules (empty list when the password is acceptable)."""
    problems = []
    if len(password) < 8:
        problems.append("Password must be at least 8 characters long")
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        problems.append(f"Password cannot exceed {PASSWORD_MAX_BYTES} bytes")
    if not re.search(r"[a-z]", password):
        problems.append("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must contain at least one uppercase letter")
    if not DIGIT_RE.search(password):
        problems.append("Password must contain at least one number")
    if not SPECIAL_RE.search(password):
        problems.append("Password must contain at least one special character (@$!%*?&)")
    return problems


def is_adult(birthdate: str, today: Optional[date] = None) -> bool:
    """Birthdate must parse as YYYY-MM-DD, not be in the future, and imply age >= 18."""
    try:
        born = datetime.strptime(birthdate, "%Y-%m-%d").date()
    except ValueError:
        return False

    today = today or date.today()
    if born > today:
        return False

    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return age >= MINIMUM_AGE


def is_valid_cpf(cpf: str) -> bool:
    """Check a CPF number with its two mod-11 check digits. Punctuation is ignored."""
    digits = re.sub(r"\D", "", cpf)
    if len(digits) != 11 or digits == digits[0] * 11:
        return False

    numbers = [int(d) for d in digits]

    total = sum(n * (10 - i) for i, n in enumerate(numbers[:9]))
    first = (total * 10 % 11) % 10

    total = sum(n * (11 - i) for i, n in enumerate(numbers[:10]))
    second = (total * 10 % 11) % 10

    return numbers[9] == first and numbers[10] == second


def validate_registration(profile: Mapping[str, str], today: Optional[date] = None) -> List[FieldError]:
    """
    Validate a registration profile.

    Returns:
        Every field problem found; empty when the profile is acceptable
    """
    errors: List[FieldError] = []

    def value(field: str) -> str:
        return (profile.get(field) or "").strip()

    for field in REQUIRED_FIELDS:
        if not value(field):
            errors.append(FieldError(field, "This field is required"))

    for field in ("first_name", "last_name"):
        name = value(field)
        if name and not is_valid_name(name):
            errors.append(FieldError(field, "Names cannot contain numbers"))

    email = value("email")
    if email and not is_valid_email(email):
        errors.append(FieldError("email", "Invalid email address"))

    password = profile.get("password") or ""
    if password:
        errors.extend(FieldError("password", message) for message in password_problems(password))

    birthdate = value("birthdate")
    if birthdate and not is_adult(birthdate, today):
        errors.append(FieldError("birthdate", "Invalid birthdate or younger than 18"))

    phone = value("phone")
    if phone and not is_valid_phone(phone):
        errors.append(FieldError("phone", "Invalid phone number"))

    cpf = value("cpf")
    if cpf and not is_valid_cpf(cpf):
        errors.append(FieldError("cpf", "Invalid CPF"))

    return errors
