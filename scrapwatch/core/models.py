"""Core data models for the change watcher."""
from dataclasses import dataclass, field
from enum import Enum

HISTORY_URL_TEMPLATE = "https://steamdb.info/app/{resource_id}/history/?changeid={change_number}"


class ConnectionState(Enum):
    """Lifecycle state of the feed connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    STOPPING = "stopping"


@dataclass(frozen=True)
class LoginResult:
    """Result code reported by the feed for a login attempt."""

    code: int
    name: str = ""

    @property
    def ok(self) -> bool:
        return self.code == 1

    def __str__(self) -> str:
        label = self.name or "Unknown"
        return f"EResult.{label}({self.code})"


LoginResult.OK = LoginResult(1, "OK")


@dataclass(frozen=True)
class ResourceChange:
    """A single entry of a change set."""

    resource_id: int
    change_number: int


@dataclass(frozen=True)
class ChangeQueryResult:
    """Answer to a "changes since token" query."""

    last_change_number: int
    current_change_number: int
    app_changes: dict[int, ResourceChange] = field(default_factory=dict)
    package_changes: dict[int, ResourceChange] = field(default_factory=dict)

    @property
    def has_progress(self) -> bool:
        return self.last_change_number != self.current_change_number


@dataclass(frozen=True)
class DetectedChange:
    """A tracked resource change ready for notification."""

    resource_id: int
    change_number: int
    display_name: str | None = None

    @property
    def history_url(self) -> str:
        return HISTORY_URL_TEMPLATE.format(
            resource_id=self.resource_id,
            change_number=self.change_number,
        )

    @property
    def label(self) -> str:
        """``Name (id)`` or just the id when no name is known."""
        if self.display_name:
            return f"{self.display_name} ({self.resource_id})"
        return str(self.resource_id)


# ---------------------------------------------------------------------------
# Feed events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FeedEvent:
    """Base class for events published by a feed client."""


@dataclass(frozen=True)
class Connected(FeedEvent):
    pass


@dataclass(frozen=True)
class Disconnected(FeedEvent):
    reason: str = ""


@dataclass(frozen=True)
class LoggedOn(FeedEvent):
    result: LoginResult = LoginResult.OK


@dataclass(frozen=True)
class LoggedOff(FeedEvent):
    result: LoginResult | None = None


@dataclass(frozen=True)
class ChangesReceived(FeedEvent):
    """Completion of a change query, posted back for single-consumer handling."""

    result: ChangeQueryResult
    token_snapshot: int = 0
