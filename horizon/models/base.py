"""Shared base utilities for data models."""
import re
import secrets

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on Postgres, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")

_ID_PATTERN = re.compile(r"^(?P<prefix>[a-z]+)_(?P<token>[0-9a-f]{12})$")


def generate_id(prefix: str) -> str:
    """Generate a unique ID with a prefix."""
    return f"{prefix}_{secrets.token_hex(6)}"


def is_valid_id(value: str, prefix: str) -> bool:
    """Check that an identifier is well-formed and carries the expected prefix."""
    if not isinstance(value, str):
        return False
    match = _ID_PATTERN.match(value)
    return bool(match) and match.group("prefix") == prefix
