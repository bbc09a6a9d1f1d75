from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ClassGroup:
    id: str
    name: str
    day: str
    start_time: str
    schedule: str = ""
    end_time: Optional[str] = None
