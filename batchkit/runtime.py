"""Process-wide wiring of the event bus, resource manager and tracker."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any

from batchkit.core.events import EventBus
from batchkit.core.registry import ResourceManager
from batchkit.core.tracker import ResourceTracker
from batchkit.lifecycle import JobRunner, install_cleanup_hook, install_failure_logger

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """The services shared by every owning context in a process.

    Attributes
    ----------
    bus : EventBus
        Event bus lifecycle events are published on
    manager : ResourceManager
        Registry of resource kinds
    """

    bus: EventBus
    manager: ResourceManager

    @property
    def tracker(self) -> ResourceTracker:
        return self.manager.tracker

    @classmethod
    def create(
        cls,
        debug: bool = False,
        cleanup_on_post_execute: bool = True,
        log_failures: bool = True,
    ) -> Runtime:
        """Build a runtime with its own bus and resource manager.

        Parameters
        ----------
        debug : bool
            Trace every bus operation
        cleanup_on_post_execute : bool
            Release job resources when a job run publishes ``post-execute``
        log_failures : bool
            Log unhandled job and task failures

        Returns
        -------
        Runtime
            Newly wired runtime
        """
        bus = EventBus(debug=debug)
        manager = ResourceManager(bus)
        runtime = cls(bus=bus, manager=manager)
        if cleanup_on_post_execute:
            install_cleanup_hook(bus, manager.tracker)
        if log_failures:
            install_failure_logger(bus)
        return runtime

    def runner(self) -> JobRunner:
        """Job runner publishing on this runtime's bus."""
        return JobRunner(self)

    def configure(self, config: dict[str, Any]) -> None:
        """Apply a loaded configuration: bus debugging and declared resource kinds.

        Parameters
        ----------
        config : dict[str, Any]
            Configuration as returned by :meth:`ConfigLoader.get_runtime_config`
        """
        from batchkit.core.config import register_configured_resources

        self.bus.debug = bool(config.get("events_debug", False))
        register_configured_resources(self.manager, config)


_default_runtime: Runtime | None = None
_default_runtime_lock = threading.Lock()


def default_runtime() -> Runtime:
    """Return the process-wide runtime, creating it on first use."""
    global _default_runtime
    with _default_runtime_lock:
        if _default_runtime is None:
            logger.debug("Creating default batchkit runtime")
            _default_runtime = Runtime.create()
        return _default_runtime


def current_default_runtime() -> Runtime | None:
    """Return the process-wide runtime without creating it."""
    with _default_runtime_lock:
        return _default_runtime


def set_default_runtime(runtime: Runtime | None) -> None:
    """Replace the process-wide runtime; None resets it to be created lazily."""
    global _default_runtime
    with _default_runtime_lock:
        _default_runtime = runtime
