"""
Sweeper component models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal
from uuid import UUID

SweepStatus = Literal["sent", "error"]


@dataclass(frozen=True)
class SweepResult:
    """Outcome of sending one due campaign."""

    campaign_id: UUID
    name: str
    status: SweepStatus
    recipient_count: int | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "campaign_id": str(self.campaign_id),
            "name": self.name,
            "status": self.status,
        }
        if self.status == "sent":
            data["recipient_count"] = self.recipient_count
        else:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class SweepSummary:
    """Aggregate of one sweep."""

    results: list[SweepResult] = field(default_factory=list)

    @property
    def total_processed(self) -> int:
        return len(self.results)

    @property
    def sent(self) -> int:
        return sum(1 for r in self.results if r.status == "sent")

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == "error")
