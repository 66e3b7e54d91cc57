"""
Shared input validation.

Each validator collects every violated constraint before failing, so a caller
fixing a bad request sees all problems at once.
"""
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, List, Optional

from peergrade.errors import InvalidInputError
from peergrade.orm.evaluation import MIN_SCORE, MAX_SCORE, QUANTIZER_2DP

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 255
URL_MAX_LENGTH = 500


def _ascii_digits(text: str) -> Optional[str]:
    """Digits of an unsigned or "+"-prefixed integer string, None otherwise."""
    digits = text[1:] if text.startswith("+") else text
    if digits.isascii() and digits.isdecimal():
        return digits
    return None


def parse_positive_id(value: Any, field_name: str, violations: List[str]) -> Optional[int]:
    """Accept ints and integer-like strings greater than zero."""
    if value is None or (isinstance(value, str) and value.strip() == ""):
        violations.append(f"{field_name} is required")
        return None
    if isinstance(value, bool):
        violations.append(f"{field_name} must be a positive integer")
        return None
    digits = _ascii_digits(value.strip()) if isinstance(value, str) else None
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float) and value.is_integer():
        parsed = int(value)
    elif digits is not None:
        parsed = int(digits)
    else:
        violations.append(f"{field_name} must be a positive integer")
        return None
    if parsed <= 0:
        violations.append(f"{field_name} must be a positive integer")
        return None
    return parsed


def parse_score(value: Any, violations: List[str]) -> Optional[Decimal]:
    """
    Parse a score in [1, 10]. The range is checked on the raw value, then the
    score is quantized half-up to two decimals.
    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        violations.append("score is required")
        return None
    if isinstance(value, bool):
        violations.append("score must be a number between 1 and 10")
        return None
    try:
        score = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        violations.append("score must be a number between 1 and 10")
        return None
    if not score.is_finite() or score < MIN_SCORE or score > MAX_SCORE:
        violations.append("score must be a number between 1 and 10")
        return None
    return score.quantize(QUANTIZER_2DP, rounding=ROUND_HALF_UP)


def validate_feedback(value: Any, violations: List[str]) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        violations.append("feedback must be text")
        return None
    return value


def validate_title(value: Any, violations: List[str], required: bool = True) -> Optional[str]:
    if value is None:
        if required:
            violations.append("title is required")
        return None
    if not isinstance(value, str):
        violations.append("title must be text")
        return None
    title = value.strip()
    if len(title) < TITLE_MIN_LENGTH or len(title) > TITLE_MAX_LENGTH:
        violations.append(
            f"title must be between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH} characters"
        )
        return None
    return title


def parse_due_date(value: Any, violations: List[str], required: bool = True) -> Optional[datetime]:
    """ISO-8601 date or datetime; aware values are normalized to naive UTC."""
    if value is None or (isinstance(value, str) and value.strip() == ""):
        if required:
            violations.append("dueDate is required")
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            violations.append("dueDate must be an ISO-8601 date")
            return None
    else:
        violations.append("dueDate must be an ISO-8601 date")
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def validate_url(value: Any, field_name: str, violations: List[str]) -> Optional[str]:
    """Empty means no link. Anything else must look like a URL or domain name."""
    if value is None:
        return None
    if not isinstance(value, str):
        violations.append(f"{field_name} must be text")
        return None
    url = value.strip()
    if url == "":
        return None
    if len(url) > URL_MAX_LENGTH:
        violations.append(f"{field_name} must be at most {URL_MAX_LENGTH} characters")
        return None
    if "." not in url and not url.startswith(("http://", "https://")):
        violations.append(f"{field_name} must contain a URL or domain name")
        return None
    return url


def raise_if_violations(violations: List[str]) -> None:
    if violations:
        raise InvalidInputError(violations)
