"""
Notification Models

Addressed messages sent through the best-effort notification side channel.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from assetmint.models.base import AssetMintModel, generate_id, utc_now


class NotificationKind(str, Enum):
    """Kinds of notification emitted by marketplace mutations."""

    BID_RECEIVED = "bid_received"
    ASSET_SOLD = "asset_sold"


class NotificationMessage(AssetMintModel):
    """A rendered, addressed message ready for delivery."""

    id: str = Field(default_factory=generate_id)
    kind: NotificationKind
    recipient: str
    subject: str
    html: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)


class DeliveryResult(AssetMintModel):
    """Outcome of one delivery attempt. Never raised, only reported."""

    success: bool
    recipient: str | None = None
    error: str | None = None
