"""Form validation for sign-in and registration input."""

import re

from stayin.models.identity import SELF_SERVICE_ROLES, SignUpData

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Zambian numbers: +260 or 0, then a 7 or 9 prefix and 8 more digits
PHONE_PATTERN = re.compile(r"^(\+260|0)[79]\d{8}$")

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 50


def validate_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email.strip()))


def validate_password(password: str) -> str | None:
    """Return an error message, or None when the password is acceptable."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
    if len(password) > MAX_PASSWORD_LENGTH:
        return "Password is too long"
    return None


def validate_phone_number(phone: str) -> bool:
    return bool(PHONE_PATTERN.match(re.sub(r"\s", "", phone)))


def validate_full_name(name: str) -> bool:
    """Require at least a first and a last name."""
    if not name or len(name.strip()) < 2:
        return False
    return len(name.split()) >= 2


def validate_sign_up(data: SignUpData) -> str | None:
    """Check a registration form.

    Args:
        data: The submitted registration fields

    Returns:
        The first error message found, or None if the form is valid
    """
    if not validate_email(data.email):
        return "Please enter a valid email address"
    password_error = validate_password(data.password)
    if password_error:
        return password_error
    if not validate_full_name(data.full_name):
        return "Please enter your first and last name"
    if not validate_phone_number(data.phone_number):
        return "Please enter a valid phone number"
    if data.role not in SELF_SERVICE_ROLES:
        return f"Role '{data.role.value}' cannot be chosen at sign-up"
    return None
