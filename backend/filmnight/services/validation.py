"""Input normalisation shared by the services."""
import re
import unicodedata
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import HttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from filmnight.services.exceptions import ValidationError

_HTTP_URL = TypeAdapter(HttpUrl)


def require_text(value: Optional[str], field: str, max_length: Optional[int] = None) -> str:
    """Strip ``value`` and reject it when empty or too long."""
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} is required", field=field)
    if max_length is not None and len(cleaned) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters", field=field)
    return cleaned


def optional_text(value: Optional[str], field: str, max_length: Optional[int] = None) -> Optional[str]:
    """Like require_text, but blank input becomes None."""
    if value is None or not value.strip():
        return None
    return require_text(value, field, max_length)


def normalize_email(value: Optional[str], field: str = "email") -> str:
    email = require_text(value, field, max_length=320)
    try:
        validated = validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(f"{field} is not a valid email address: {e}", field=field)
    return validated.normalized.lower()


def require_url(value: Optional[str], field: str, max_length: int = 500) -> str:
    """Require an absolute http(s) URL; the stripped input is returned unchanged."""
    url = require_text(value, field, max_length=max_length)
    try:
        _HTTP_URL.validate_python(url)
    except PydanticValidationError:
        raise ValidationError(f"{field} must be an http(s) URL", field=field)
    return url


def optional_url(value: Optional[str], field: str, max_length: int = 1000) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return require_url(value, field, max_length=max_length)


def require_non_negative(value: int, field: str) -> int:
    if value is None or value < 0:
        raise ValidationError(f"{field} must be >= 0", field=field)
    return value


def slugify(text: str) -> str:
    """Generate a URL-friendly slug (e.g. "Café Night!" -> "cafe-night")."""
    normalized = unicodedata.normalize("NFKD", text)
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_text.lower()).strip("-")
    slug = re.sub(r"-+", "-", slug)
    if not slug:
        raise ValidationError("slug cannot be derived from an empty title", field="slug")
    return slug
