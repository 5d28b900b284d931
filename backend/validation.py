import re
from typing import Any

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(candidate: Any) -> str:
    if not isinstance(candidate, str):
        return ""
    return candidate.strip().lower()


def is_valid_email(candidate: Any) -> bool:
    """True when candidate looks like local@domain.tld with no whitespace."""
    if not isinstance(candidate, str) or not candidate:
        return False
    return EMAIL_REGEX.fullmatch(candidate) is not None
