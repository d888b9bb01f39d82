"""
Base Models and Common Types

Foundation classes for all AssetMint models.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict


def generate_id() -> str:
    """Generate a new UUID string."""
    return str(uuid4())


def utc_now() -> datetime:
    return datetime.now(UTC)


def parse_timestamp(value: Any) -> datetime:
    """
    Convert a PostgREST timestamp (ISO string, possibly with a trailing Z)
    to an aware datetime. Missing values become "now".
    """
    if value is None:
        return utc_now()
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed
    return value


class AssetMintModel(BaseModel):
    """Base model for all AssetMint entities with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class FrozenModel(AssetMintModel):
    """Immutable value object; used for per-action request inputs."""

    model_config = ConfigDict(frozen=True)


def short_wallet(address: str) -> str:
    """Shorten a wallet address for display: 0x1234...abcd."""
    if len(address) <= 12:
        return address
    return f"{address[:6]}...{address[-4:]}"
