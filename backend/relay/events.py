"""Events delivered to the relay's single consuming loop."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from shared.models.enums import RelayEventType


@dataclass(frozen=True)
class RelayEvent:
    """A timer firing or transport notification, tagged with its connection epoch."""

    type: RelayEventType
    epoch: int = 0
    detail: dict[str, Any] = field(default_factory=dict)
