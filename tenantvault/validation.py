"""
Input validation and normalization — emails, tenant slugs, passwords, names.

All writes pass through these helpers before reaching the store, so the
uniqueness checks in the services and the unique indexes in the schema
see the same canonical values.

Usage:
    from tenantvault.validation import normalize_email, normalize_slug

    normalize_email("  Jane@Example.COM ")  # "jane@example.com"
    normalize_slug("Acme-Corp")             # "acme-corp"
"""

from __future__ import annotations

import re

from tenantvault.errors import InvalidInputError

SLUG_MAX_LENGTH = 100

_SLUG_RE = re.compile(r"^[a-z0-9][a-z0-9-]*$")
_SLUG_SCRUB_RE = re.compile(r"[^a-z0-9-]+")


def normalize_email(email: str | None) -> str | None:
    """Normalize email: lowercase, strip whitespace. None if not an address."""
    if not email:
        return None
    normalized = email.lower().strip()
    if "@" not in normalized or normalized.startswith("@") or normalized.endswith("@"):
        return None
    return normalized


def require_email(email: str | None) -> str:
    normalized = normalize_email(email)
    if normalized is None:
        raise InvalidInputError("a valid email address is required")
    return normalized


def normalize_slug(slug: str | None) -> str:
    """Lowercase and validate a tenant slug. Raises InvalidInputError."""
    if not slug or not slug.strip():
        raise InvalidInputError("slug is required")
    normalized = slug.strip().lower()
    if len(normalized) > SLUG_MAX_LENGTH:
        raise InvalidInputError(f"slug must be at most {SLUG_MAX_LENGTH} characters")
    if not _SLUG_RE.match(normalized):
        raise InvalidInputError(
            "slug may only contain letters, digits and '-' and must start with a letter or digit"
        )
    return normalized


def slugify(text: str) -> str:
    """Turn free text (a name, an email) into slug characters."""
    scrubbed = _SLUG_SCRUB_RE.sub("-", text.strip().lower().replace("@", "-at-"))
    return scrubbed.strip("-")[:SLUG_MAX_LENGTH] or "tenant"


def personal_tenant_slug(email: str) -> str:
    """Slug of the tenant created for a personal account."""
    return slugify(email)[: SLUG_MAX_LENGTH - len("-personal")] + "-personal"


def require_name(value: str | None, field: str = "name") -> str:
    if value is None or not value.strip():
        raise InvalidInputError(f"{field} is required")
    return value.strip()


def validate_password(password: str | None, min_length: int = 8) -> str:
    """Reject missing or short passwords. Returns the password unchanged."""
    if not password:
        raise InvalidInputError("password is required")
    if len(password) < min_length:
        raise InvalidInputError(f"password must be at least {min_length} characters")
    return password
