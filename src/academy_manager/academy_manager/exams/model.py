from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ExamRecord:
    id: str
    student_id: str
    test_name: str
    score: float
    total: float
    date: str

    @property
    def percentage(self) -> Optional[float]:
        if not self.total:
            return None
        return self.score / self.total * 100


@dataclass(frozen=True)
class ExamStats:
    average: int
    best_test: str
    best_score: int
    count: int
