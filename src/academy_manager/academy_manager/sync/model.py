from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..core.enums import Operation


@dataclass(frozen=True)
class OfflineAction:
    """A pending remote write; removed only after the gateway acknowledges it."""

    id: str
    table: str
    type: Operation
    data: dict[str, Any]
    timestamp: int


@dataclass(frozen=True)
class DrainResult:
    succeeded: int
    remaining: list[OfflineAction] = field(default_factory=list)
    skipped: bool = False
