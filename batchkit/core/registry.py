"""Registry of resource kinds and the acquisition protocol."""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from batchkit.constants import (
    DEFAULT_ACQUISITION_METHOD,
    DEFAULT_DISPOSAL_METHOD,
    RESOURCE_ACQUIRED,
    RESOURCE_ACQUISITION_FAILED,
    RESOURCE_PRE_ACQUIRE,
    RESOURCE_REGISTERED,
)
from batchkit.core.events import EventBus
from batchkit.core.handles import ResourceHandle, unwrap
from batchkit.exceptions import (
    ConflictingDisposalOperationError,
    DuplicateRegistrationError,
    MissingDisposalOperationError,
    TypeMismatchError,
    UnknownHelperError,
    UnregisteredResourceError,
)

if TYPE_CHECKING:
    from batchkit.core.tracker import ResourceTracker

logger = logging.getLogger(__name__)

AcquireBody = Callable[..., Any]


@dataclass(frozen=True)
class ResourceKind:
    """Registration record for a kind of resource.

    Attributes
    ----------
    kind : type
        Class every acquired instance must belong to
    helper_name : str
        Name of the acquisition helper operation
    acquire : AcquireBody
        Callable invoked as ``acquire(owner, *args, **kwargs)``
    disposal_method : str
        Instance operation that releases the resource
    """

    kind: type
    helper_name: str
    acquire: AcquireBody
    disposal_method: str

    def accepts(self, resource: Any) -> bool:
        """Check whether ``resource`` belongs to this kind."""
        return isinstance(unwrap(resource), self.kind)


class ResourceManager:
    """Registers resource kinds and acquires tracked instances of them.

    One manager is shared by every owning context in the process (see
    :class:`batchkit.runtime.Runtime`). Registration normally happens once at
    start-up; acquisition happens for a specific owner and records the result
    with the owner's tracker.

    Parameters
    ----------
    bus : EventBus
        Bus lifecycle events are published on. Its lock also guards the kind
        table.
    """

    def __init__(self, bus: EventBus) -> None:
        self.bus = bus
        self._lock = bus.lock
        self._kinds: dict[type, ResourceKind] = {}
        self._helpers: dict[str, ResourceKind] = {}
        self._tracker: ResourceTracker | None = None

    @property
    def tracker(self) -> ResourceTracker:
        """Ownership tracker resources acquired through this manager are added to."""
        if self._tracker is None:
            from batchkit.core.tracker import ResourceTracker

            self._tracker = ResourceTracker(self)
        return self._tracker

    def register(
        self,
        kind: type,
        helper_name: str,
        acquire: AcquireBody | None = None,
        *,
        acquisition_method: str = DEFAULT_ACQUISITION_METHOD,
        disposal_method: str = DEFAULT_DISPOSAL_METHOD,
    ) -> ResourceKind:
        """Register a resource kind for managed acquisition and disposal.

        Parameters
        ----------
        kind : type
            Class of the objects returned when a resource is acquired
        helper_name : str
            Name under which owning contexts call the acquisition helper
        acquire : AcquireBody | None
            Acquisition body, called as ``acquire(owner, *args, **kwargs)``.
            When None, ``getattr(kind, acquisition_method)(*args, **kwargs)``
            is used instead.
        acquisition_method : str
            Class-level operation used when no ``acquire`` body is given
        disposal_method : str
            Instance operation that releases an acquired resource

        Returns
        -------
        ResourceKind
            The registration record

        Raises
        ------
        DuplicateRegistrationError
            If ``helper_name`` is already bound to a different kind
        MissingDisposalOperationError
            If ``kind`` does not define ``disposal_method``
        ConflictingDisposalOperationError
            If ``kind`` was registered with a different disposal operation
        """
        if acquire is None:
            acquire = _class_acquisition(kind, acquisition_method)

        with self._lock:
            existing_helper = self._helpers.get(helper_name)
            if existing_helper is not None and existing_helper.kind is not kind:
                raise DuplicateRegistrationError(helper_name, existing_helper.kind)

            if not callable(getattr(kind, disposal_method, None)):
                raise MissingDisposalOperationError(kind, disposal_method)

            existing_kind = self._kinds.get(kind)
            if existing_kind is not None and existing_kind.disposal_method != disposal_method:
                raise ConflictingDisposalOperationError(
                    kind, existing_kind.disposal_method, disposal_method
                )

            registration = ResourceKind(
                kind=kind,
                helper_name=helper_name,
                acquire=acquire,
                disposal_method=disposal_method,
            )
            self._kinds[kind] = registration
            self._helpers[helper_name] = registration

        logger.debug(
            "Registered resource kind %s as '%s' (disposal: %s)",
            kind.__qualname__,
            helper_name,
            disposal_method,
        )
        self.bus.publish(self, RESOURCE_REGISTERED, kind, helper_name)
        return registration

    def helper(self, helper_name: str) -> ResourceKind:
        """Look up the registration bound to an acquisition helper name.

        Raises
        ------
        UnknownHelperError
            If no kind is registered under ``helper_name``
        """
        with self._lock:
            registration = self._helpers.get(helper_name)
        if registration is None:
            raise UnknownHelperError(helper_name)
        return registration

    def kinds(self) -> list[ResourceKind]:
        """Return registrations in registration order."""
        with self._lock:
            return list(self._kinds.values())

    def helper_names(self) -> list[str]:
        with self._lock:
            return list(self._helpers)

    def __contains__(self, helper_name: object) -> bool:
        with self._lock:
            return helper_name in self._helpers

    def kind_for(self, resource: Any) -> ResourceKind:
        """Find the registration a resource instance belongs to.

        An exact class match wins; otherwise the first registered kind the
        instance is an instance of is used.

        Parameters
        ----------
        resource : Any
            Resource instance or handle

        Returns
        -------
        ResourceKind
            Matching registration

        Raises
        ------
        UnregisteredResourceError
            If no registered kind matches
        """
        instance = unwrap(resource)
        with self._lock:
            registration = self._kinds.get(type(instance))
            if registration is None:
                registration = next(
                    (reg for reg in self._kinds.values() if isinstance(instance, reg.kind)),
                    None,
                )
        if registration is None:
            raise UnregisteredResourceError(instance)
        return registration

    def disposal_method(self, resource: Any) -> str:
        """Name of the operation that releases ``resource``.

        Raises
        ------
        UnregisteredResourceError
            If no registered kind matches
        """
        return self.kind_for(resource).disposal_method

    def acquire(self, owner: Any, helper_name: str, *args: Any, **kwargs: Any) -> Any:
        """Acquire a resource for ``owner`` through a registered helper.

        Publishes ``resource.pre_acquire`` first; if a subscriber vetoes it,
        nothing is acquired and None is returned. On success the resource is
        wrapped in a :class:`ResourceHandle`, recorded against ``owner`` and
        ``resource.acquired`` is published. Any failure publishes
        ``resource.acquisition_failed`` and is re-raised.

        Parameters
        ----------
        owner : Any
            Owning context responsible for releasing the resource
        helper_name : str
            Registered acquisition helper name
        *args : Any
            Positional arguments for the acquisition body
        **kwargs : Any
            Keyword arguments for the acquisition body

        Returns
        -------
        Any
            Handle for the acquired resource, or None if acquisition was vetoed

        Raises
        ------
        UnknownHelperError
            If ``helper_name`` is not registered
        TypeMismatchError
            If the acquisition body returned an object of the wrong kind
        """
        registration = self.helper(helper_name)
        kind = registration.kind

        if not self.bus.publish(kind, RESOURCE_PRE_ACQUIRE, *args):
            logger.debug("Acquisition of %s vetoed by a subscriber", kind.__qualname__)
            return None

        try:
            instance = registration.acquire(owner, *args, **kwargs)
            if not isinstance(instance, kind):
                raise TypeMismatchError(kind, instance)

            handle = ResourceHandle(
                instance,
                registration.disposal_method,
                functools.partial(self.tracker.dispose_resource, owner),
                owner=owner,
            )
            self.tracker.add_resource(owner, handle)
            self.bus.publish(kind, RESOURCE_ACQUIRED, handle)
        except Exception as e:
            logger.debug("Acquisition of %s failed: %s", kind.__qualname__, e)
            self.bus.publish(kind, RESOURCE_ACQUISITION_FAILED, e)
            raise

        return handle

    def bind(self, owner: Any, helper_name: str) -> Callable[..., Any]:
        """Return the acquisition helper for ``helper_name`` bound to ``owner``."""
        self.helper(helper_name)

        def acquire_helper(*args: Any, **kwargs: Any) -> Any:
            return self.acquire(owner, helper_name, *args, **kwargs)

        acquire_helper.__name__ = helper_name
        return acquire_helper


def _class_acquisition(kind: type, acquisition_method: str) -> AcquireBody:
    def acquire(_owner: Any, *args: Any, **kwargs: Any) -> Any:
        return getattr(kind, acquisition_method)(*args, **kwargs)

    return acquire
