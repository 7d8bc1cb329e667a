"""Fixtures shared by batchkit unit tests."""

from typing import Any

import pytest

from batchkit.core.events import EventBus
from batchkit.core.helper import ResourceHelper
from batchkit.core.registry import ResourceManager
from batchkit.core.tracker import ResourceTracker
from batchkit.runtime import Runtime
from tests.fakes import DisposalLog, FakeConnection, FakeFile


class Owner(ResourceHelper):
    """Owning context with configuration, as a job would have."""

    def __init__(self, manager: ResourceManager, config: dict[str, Any] | None = None) -> None:
        self.resource_manager = manager
        self.config = config or {}


class EventLog:
    """Subscriber recording ``(event, source, payload)`` for every event it hears."""

    def __init__(self) -> None:
        self.entries: list[tuple[str, Any, tuple[Any, ...]]] = []

    def listen(self, bus: EventBus, *events: str) -> "EventLog":
        for event in events:
            bus.subscribe(None, event, self._recorder(event))
        return self

    def _recorder(self, event: str):
        def record(source: Any, *payload: Any) -> bool:
            self.entries.append((event, source, payload))
            return True

        return record

    def names(self) -> list[str]:
        return [event for event, _, _ in self.entries]

    def of(self, event: str) -> list[tuple[Any, tuple[Any, ...]]]:
        return [(source, payload) for name, source, payload in self.entries if name == event]


@pytest.fixture
def bus() -> EventBus:
    """Event bus without any subscribers."""
    return EventBus()


@pytest.fixture
def manager(bus: EventBus) -> ResourceManager:
    """Resource manager publishing on the ``bus`` fixture."""
    return ResourceManager(bus)


@pytest.fixture
def tracker(manager: ResourceManager) -> ResourceTracker:
    return manager.tracker


@pytest.fixture
def disposals() -> DisposalLog:
    return DisposalLog()


@pytest.fixture
def registered(manager: ResourceManager, disposals: DisposalLog) -> ResourceManager:
    """Manager with fake files and fake connections registered.

    ``get_file(path)`` opens a FakeFile logging to ``disposals``;
    ``get_connection(dsn)`` opens a FakeConnection released with ``disconnect``.
    """
    manager.register(
        FakeFile, "get_file", lambda owner, path: FakeFile.open(path, disposals)
    )
    manager.register(
        FakeConnection,
        "get_connection",
        lambda owner, dsn, **kwargs: FakeConnection(dsn, disposals, **kwargs),
        disposal_method="disconnect",
    )
    return manager


@pytest.fixture
def owner(registered: ResourceManager) -> Owner:
    return Owner(registered)


@pytest.fixture
def events(bus: EventBus) -> EventLog:
    """Recorder subscribed to every resource lifecycle event."""
    return EventLog().listen(
        bus,
        "resource.registered",
        "resource.pre_acquire",
        "resource.acquired",
        "resource.acquisition_failed",
        "resource.pre-disposal",
        "resource.disposed",
        "resource.disposal-failed",
    )


@pytest.fixture
def runtime() -> Runtime:
    """Fully wired runtime with the post-execute cleanup hook installed."""
    return Runtime.create()
