"""
Field constraints for user, article and comment input.

Each ``clean_*`` helper normalises one value and records a message in the
shared *errors* dict instead of raising, so a single request reports every
bad field at once.  Callers finish with ``raise_if_errors``.
"""
import re

from conduit.exceptions import ValidationError

BLANK = "can't be blank"
INVALID = "is invalid"

# ASCII letters, digits and underscore only.
USERNAME_RE = re.compile(r"^\w+$", re.ASCII)
EMAIL_RE = re.compile(r"\S+@\S+\.\S+")


def is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def clean_required(errors: dict[str, str], field: str, value: str | None) -> str | None:
    """Return *value* trimmed, or record a blank error for *field*."""
    if is_blank(value):
        errors[field] = BLANK
        return None
    return value.strip()


def clean_username(errors: dict[str, str], value: str | None) -> str | None:
    """Usernames are stored lowercase and must be word characters only."""
    value = clean_required(errors, "username", value)
    if value is None:
        return None
    value = value.lower()
    if not USERNAME_RE.match(value):
        errors["username"] = INVALID
        return None
    return value


def clean_email(errors: dict[str, str], value: str | None) -> str | None:
    value = clean_required(errors, "email", value)
    if value is None:
        return None
    value = value.lower()
    if not EMAIL_RE.search(value):
        errors["email"] = INVALID
        return None
    return value


def clean_password(errors: dict[str, str], value: str | None) -> str | None:
    # Passwords are not trimmed; only an empty or all-space value is rejected.
    if is_blank(value):
        errors["password"] = BLANK
        return None
    return value


def clean_tag_list(tags: list[str] | None) -> list[str]:
    """Trim tags, drop blanks and duplicates, keep first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags or []:
        tag = tag.strip()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


def raise_if_errors(errors: dict[str, str]) -> None:
    if errors:
        raise ValidationError(errors)
