"""Synchronous in-process event bus."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

from batchkit.constants import TRACE
from batchkit.core.matchers import SourceMatcher, matcher_for, matches, matches_exactly

logger = logging.getLogger("batchkit.events")

REGISTRY_LOCK = threading.RLock()
"""Process-wide lock shared by subscription lists and the resource kind table."""

EventCallback = Callable[..., Any]


@dataclass(eq=False)
class Subscription:
    """A callback registered for one event name.

    Instances are returned by :meth:`EventBus.subscribe` and can be passed to
    :meth:`EventBus.cancel` to remove exactly this subscription.

    Attributes
    ----------
    event : str
        Event name the subscription listens to
    matcher : SourceMatcher
        Predicate over event sources
    callback : EventCallback
        Callable invoked as ``callback(source, *payload)``
    """

    event: str
    matcher: SourceMatcher
    callback: EventCallback = field(repr=False)

    @property
    def source(self) -> Any:
        return self.matcher.source

    def accepts(self, source: Any) -> bool:
        """Check whether an event from ``source`` should be delivered here."""
        return matches(self.matcher, source)

    def __repr__(self) -> str:
        name = getattr(self.callback, "__qualname__", None) or repr(self.callback)
        return f"<Subscription {self.event!r} source={self.source!r} callback={name}>"


class EventBus:
    """Publish/subscribe hub with ordered, failure-isolated delivery.

    Subscriptions are kept per event name in insertion order. Publishing
    delivers to every matching subscription in that order, even when one of
    them raises or returns a falsy value.

    Parameters
    ----------
    lock : threading.RLock | None
        Lock guarding subscription lists; defaults to the process-wide
        :data:`REGISTRY_LOCK` shared with the resource manager
    debug : bool
        Log every subscribe, unsubscribe and publish call
    """

    def __init__(self, lock: threading.RLock | None = None, debug: bool = False) -> None:
        self.lock = lock if lock is not None else REGISTRY_LOCK
        self._subscribers: dict[str, list[Subscription]] = {}
        self._debug = debug

    @property
    def debug(self) -> bool:
        return self._debug

    @debug.setter
    def debug(self, enabled: bool) -> None:
        self._debug = bool(enabled)

    def subscribe(
        self,
        source: Any,
        event: str,
        callback: EventCallback,
        position: int | None = None,
    ) -> Subscription:
        """Subscribe a callback to an event.

        Parameters
        ----------
        source : Any
            Source to listen to: an object, a class (matches its instances
            and subclasses), or None for every source
        event : str
            Event name
        callback : EventCallback
            Callable invoked with ``(source, *payload)``. Returning a falsy
            value, None included, makes ``publish`` report False.
        position : int | None
            Index at which to insert the subscription; appended when None.
            Negative positions count from the end and insert after that
            entry, so -1 also appends.

        Returns
        -------
        Subscription
            Token that can be passed to :meth:`cancel`
        """
        subscription = Subscription(event=event, matcher=matcher_for(source), callback=callback)

        if self._debug:
            logger.log(TRACE, "Adding subscriber for %r event '%s'", source, event)

        with self.lock:
            subscriptions = self._subscribers.setdefault(event, [])
            if position is None:
                subscriptions.append(subscription)
            elif position < 0:
                subscriptions.insert(max(len(subscriptions) + position + 1, 0), subscription)
            else:
                subscriptions.insert(position, subscription)

        return subscription

    def unsubscribe(self, source: Any, event: str) -> int:
        """Remove subscriptions registered for exactly ``source``.

        Category, wildcard and owner-delegated matching are not applied, so
        unsubscribing a specific object never removes a wildcard or class
        subscription that would also have matched it.

        Parameters
        ----------
        source : Any
            Source the subscriptions were registered with
        event : str
            Event name

        Returns
        -------
        int
            Number of subscriptions removed
        """
        if self._debug:
            logger.log(TRACE, "Removing subscriber(s) for %r event '%s'", source, event)

        with self.lock:
            subscriptions = self._subscribers.get(event)
            if not subscriptions:
                return 0
            kept = [sub for sub in subscriptions if not matches_exactly(sub.matcher, source)]
            removed = len(subscriptions) - len(kept)
            self._subscribers[event] = kept

        return removed

    def cancel(self, subscription: Subscription) -> bool:
        """Remove a single subscription.

        Parameters
        ----------
        subscription : Subscription
            Token returned by :meth:`subscribe`

        Returns
        -------
        bool
            True if the subscription was still registered
        """
        with self.lock:
            subscriptions = self._subscribers.get(subscription.event, [])
            kept = [sub for sub in subscriptions if sub is not subscription]
            if len(kept) == len(subscriptions):
                return False
            self._subscribers[subscription.event] = kept
            return True

    def publish(self, source: Any, event: str, *payload: Any) -> bool:
        """Publish an event to all matching subscribers.

        Delivery is exhaustive: exceptions raised by callbacks are logged and
        a falsy return value does not stop delivery to later subscribers.

        Parameters
        ----------
        source : Any
            Object the event originates from
        event : str
            Event name
        *payload : Any
            Extra arguments passed to callbacks after the source

        Returns
        -------
        bool
            False if any subscriber returned a falsy value (None included),
            True otherwise, including when nobody is subscribed. Callbacks
            that raise do not vote.
        """
        if self._debug:
            logger.log(TRACE, "Publishing event '%s' for %r", event, source)

        with self.lock:
            subscriptions = self._subscribers.get(event)
            if not subscriptions:
                return True
            subscriptions = list(subscriptions)

        result = True
        notified = 0
        for subscription in subscriptions:
            if not subscription.accepts(source):
                continue
            try:
                outcome = subscription.callback(source, *payload)
            except Exception:
                logger.exception(
                    "Exception in '%s' event listener for %r",
                    event,
                    source,
                    extra={"event": event},
                )
                continue
            notified += 1
            result = result and bool(outcome)

        if self._debug:
            logger.debug("Notified %d listeners of '%s'", notified, event)

        return result

    def has_subscribers(self, source: Any, event: str) -> bool:
        """Check whether publishing ``event`` from ``source`` would reach anyone.

        Parameters
        ----------
        source : Any
            Prospective event source
        event : str
            Event name

        Returns
        -------
        bool
            True if at least one subscription matches
        """
        with self.lock:
            subscriptions = list(self._subscribers.get(event, ()))
        return any(sub.accepts(source) for sub in subscriptions)

    def subscriptions(self, event: str) -> list[Subscription]:
        """Return a snapshot of the subscriptions for an event."""
        with self.lock:
            return list(self._subscribers.get(event, ()))

    def events(self) -> Iterator[str]:
        """Iterate over event names that currently have subscriptions."""
        with self.lock:
            names = [name for name, subs in self._subscribers.items() if subs]
        return iter(names)

    def dump_subscribers(
        self, event: str | None = None, log: logging.Logger | None = None
    ) -> None:
        """Log events and their subscriptions.

        Parameters
        ----------
        event : str | None
            Only dump this event; every event when None
        log : logging.Logger | None
            Logger to write to; the bus logger when None
        """
        log = log or logger
        for name in self.events():
            if event is not None and name != event:
                continue
            log.info("Subscribers for event '%s':", name)
            for subscription in self.subscriptions(name):
                log.info("  %r", subscription)

    def clear(self) -> None:
        """Remove every subscription."""
        with self.lock:
            self._subscribers.clear()
