"""Data models for monitored check results and on-screen geometry."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


@dataclass(frozen=True)
class ConditionResult:
    """Outcome of one condition evaluated during a check."""

    description: str
    success: bool


@dataclass(frozen=True)
class Sample:
    """One monitored check outcome.

    Attributes:
        timestamp: When the check was performed.
        success: Whether the check passed.
        duration_nanos: Response time in nanoseconds, 0 when not measured.
        condition_results: Ordered condition outcomes, if reported.
        errors: Ordered error messages, if any.
        status: HTTP status code, or None if not applicable.
        hostname: Hostname that was checked, or None.
    """

    timestamp: datetime
    success: bool
    duration_nanos: int = 0
    condition_results: tuple[ConditionResult, ...] = ()
    errors: tuple[str, ...] = ()
    status: int | None = None
    hostname: str | None = None

    @property
    def duration_ms(self) -> float:
        return self.duration_nanos / 1_000_000


class EventType(StrEnum):
    HEALTHY = "HEALTHY"
    UNHEALTHY = "UNHEALTHY"
    START = "START"


@dataclass(frozen=True)
class EndpointEvent:
    """A health transition of an endpoint."""

    type: EventType
    timestamp: datetime


@dataclass(frozen=True)
class EndpointStatus:
    """Recent results for a single endpoint, oldest first.

    Events are health transitions, oldest first, when the backend reports them.
    """

    name: str
    key: str
    group: str = ""
    results: tuple[Sample, ...] = ()
    events: tuple[EndpointEvent, ...] = ()

    @property
    def latest(self) -> Sample | None:
        return self.results[-1] if self.results else None


@dataclass(frozen=True)
class SuiteStatus:
    """Recent results for a suite of endpoints, oldest first.

    Suite results are stored as samples whose condition results are the
    per-endpoint outcomes of the suite run.
    """

    name: str
    key: str
    group: str = ""
    results: tuple[Sample, ...] = ()

    @property
    def latest(self) -> Sample | None:
        return self.results[-1] if self.results else None


@dataclass(frozen=True)
class SeriesPoint:
    """A single point of a response-time trend."""

    timestamp_ms: int
    value_ms: float


@dataclass(frozen=True)
class ResponseTimeHistory:
    """Index-aligned timestamps (epoch ms) and response times (ms)."""

    timestamps: tuple[int, ...] = ()
    values: tuple[float, ...] = ()

    def __post_init__(self) -> None:
        if len(self.timestamps) != len(self.values):
            raise ValueError(
                f"timestamps and values must have equal length "
                f"(got {len(self.timestamps)} and {len(self.values)})"
            )

    def __len__(self) -> int:
        return len(self.values)

    def points(self) -> list[SeriesPoint]:
        return [SeriesPoint(t, v) for t, v in zip(self.timestamps, self.values)]


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class Position:
    """Top-left corner of a box in document coordinates."""

    top: float
    left: float


@dataclass(frozen=True)
class Viewport:
    """Visible area of the page and its current scroll offset."""

    width: float
    height: float
    scroll_x: float = 0
    scroll_y: float = 0


@dataclass(frozen=True)
class Anchor:
    """Screen rectangle of the element a tooltip is attached to.

    Coordinates are viewport-relative, like a bounding client rect.
    """

    top: float
    left: float
    width: float
    height: float

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def right(self) -> float:
        return self.left + self.width

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x <= self.right and self.top <= y <= self.bottom


class TooltipAction(StrEnum):
    HOVER = "hover"
    CLICK = "click"


@dataclass(frozen=True)
class TooltipState:
    """What the page-wide tooltip shows and whether it is pinned.

    Attributes:
        content: The sample or series point shown, None when hidden.
        anchor: Rectangle of the originating element.
        persistent: True when opened by a click; survives pointer-leave.
    """

    content: Sample | SeriesPoint | None = None
    anchor: Anchor | None = None
    persistent: bool = False

    @classmethod
    def hidden(cls) -> "TooltipState":
        return cls()

    @property
    def visible(self) -> bool:
        return self.content is not None and self.anchor is not None


@dataclass(frozen=True)
class SelectionToken:
    """Identifies the element that currently owns the persistent tooltip."""

    owner: str
    index: int


@dataclass(frozen=True)
class Announcement:
    title: str
    description: str = ""
    severity: str = "none"
    start_time: datetime | None = None
    end_time: datetime | None = None
    archived: bool = False


@dataclass(frozen=True)
class AppConfig:
    """Server-side settings that the dashboard re-checks periodically."""

    oidc: bool = False
    authenticated: bool = True
    announcements: list[Announcement] = field(default_factory=list)
