"""Health states, per-dependency reports and the service snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict

__all__ = [
    "HealthDetail",
    "HealthReport",
    "HealthSnapshot",
    "HealthStatus",
    "build_snapshot",
    "worst_status",
]


class HealthStatus(StrEnum):
    """State of one dependency, or of the whole service."""

    OK = "ok"
    DEGRADED = "degraded"
    ERROR = "error"
    UNKNOWN = "unknown"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY: dict[HealthStatus, int] = {
    HealthStatus.OK: 0,
    HealthStatus.UNKNOWN: 1,
    HealthStatus.DEGRADED: 2,
    HealthStatus.ERROR: 3,
}


def _clean(text: str | None) -> str | None:
    if text is None:
        return None
    return text.strip() or None


@dataclass(frozen=True, slots=True)
class HealthReport:
    """What a check found for one dependency.

    ``actions`` are operator hints such as "Set OPENAI_API_KEY ...";
    ``last_refresh_at`` is when the dependency last did useful work.
    """

    name: str
    status: HealthStatus
    summary: str | None = None
    actions: tuple[str, ...] = field(default=())
    last_refresh_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", self.name.strip())
        object.__setattr__(self, "summary", _clean(self.summary))
        object.__setattr__(
            self,
            "actions",
            tuple(a for a in (_clean(str(x)) for x in self.actions) if a),
        )


def worst_status(statuses: Iterable[HealthStatus]) -> HealthStatus:
    """Pick the most severe status; no statuses at all is ``OK``.

    Example:
        >>> worst_status([HealthStatus.OK, HealthStatus.DEGRADED]).value
        'degraded'
    """

    return max(statuses, key=lambda s: s.severity, default=HealthStatus.OK)


class HealthDetail(BaseModel):
    """JSON form of a :class:`HealthReport`."""

    model_config = ConfigDict(frozen=True)

    name: str
    status: HealthStatus
    summary: str | None = None
    actions: tuple[str, ...] = ()
    last_refresh_at: datetime | None = None

    @classmethod
    def from_report(cls, report: HealthReport) -> "HealthDetail":
        return cls(
            name=report.name,
            status=report.status,
            summary=report.summary,
            actions=report.actions,
            last_refresh_at=report.last_refresh_at,
        )


class HealthSnapshot(BaseModel):
    """Body of ``GET /health`` and ``govindex checkhealth --json``."""

    model_config = ConfigDict(frozen=True)

    service: str
    checked_at: datetime
    status: HealthStatus
    details: tuple[HealthDetail, ...] = ()

    def to_mapping(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


def build_snapshot(
    reports: Iterable[HealthReport],
    *,
    service: str,
    checked_at: datetime | None = None,
) -> HealthSnapshot:
    """Aggregate ``reports`` in order under their worst status."""

    reports = tuple(reports)
    return HealthSnapshot(
        service=service,
        checked_at=checked_at or datetime.now(timezone.utc),
        status=worst_status(r.status for r in reports),
        details=tuple(HealthDetail.from_report(r) for r in reports),
    )
