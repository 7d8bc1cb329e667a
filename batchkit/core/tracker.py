"""Ownership tracking and disposal of acquired resources."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from batchkit.constants import (
    RESOURCE_DISPOSAL_FAILED,
    RESOURCE_DISPOSED,
    RESOURCE_PRE_DISPOSAL,
)
from batchkit.core.handles import unwrap

if TYPE_CHECKING:
    from batchkit.core.registry import ResourceManager

logger = logging.getLogger(__name__)


class OwnershipSet:
    """Resources currently held by one owning context.

    Entries are keyed by the identity of the underlying instance, so adding a
    handle and its wrapped instance counts once. Iteration follows
    acquisition order.

    Parameters
    ----------
    owner : Any
        Owning context the set belongs to
    """

    def __init__(self, owner: Any) -> None:
        self.owner = owner
        self._entries: dict[int, Any] = {}

    def add(self, resource: Any) -> None:
        self._entries.setdefault(id(unwrap(resource)), resource)

    def discard(self, resource: Any) -> Any:
        """Remove ``resource`` and return the stored entry, or None if absent."""
        return self._entries.pop(id(unwrap(resource)), None)

    def get(self, resource: Any) -> Any:
        return self._entries.get(id(unwrap(resource)))

    def __contains__(self, resource: object) -> bool:
        return id(unwrap(resource)) in self._entries

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"<OwnershipSet owner={self.owner!r} size={len(self)}>"


class ResourceTracker:
    """Tracks resources per owning context and disposes of them.

    All disposals, whether triggered by calling a handle's disposal operation
    or by :meth:`cleanup_resources`, go through :meth:`dispose_resource`.

    Parameters
    ----------
    manager : ResourceManager
        Manager used to resolve disposal operations and publish events
    """

    def __init__(self, manager: ResourceManager) -> None:
        self.manager = manager
        self._owned: dict[int, OwnershipSet] = {}

    @property
    def bus(self) -> Any:
        return self.manager.bus

    def ownership(self, owner: Any, create: bool = False) -> OwnershipSet | None:
        """Return the ownership set of ``owner``.

        Parameters
        ----------
        owner : Any
            Owning context
        create : bool
            Create an empty set if the owner holds nothing yet

        Returns
        -------
        OwnershipSet | None
            The owner's set, or None when it has none and ``create`` is False
        """
        ownership = self._owned.get(id(owner))
        if ownership is None and create:
            ownership = self._owned.setdefault(id(owner), OwnershipSet(owner))
        return ownership

    def resources_of(self, owner: Any) -> list[Any]:
        """Resources currently held by ``owner``, in acquisition order."""
        ownership = self.ownership(owner)
        return list(ownership) if ownership is not None else []

    def add_resource(self, owner: Any, resource: Any) -> None:
        """Record ``resource`` as held by ``owner``.

        Parameters
        ----------
        owner : Any
            Owning context
        resource : Any
            Resource instance or handle

        Raises
        ------
        UnregisteredResourceError
            If no registered kind knows how to dispose of ``resource``
        """
        self.manager.disposal_method(resource)
        self.ownership(owner, create=True).add(resource)

    def dispose_resource(self, owner: Any, resource: Any) -> None:
        """Dispose of a resource held by ``owner``.

        The resource leaves the owner's set before its disposal operation
        runs. A falsy ``resource.pre-disposal`` result skips disposal
        entirely.

        Parameters
        ----------
        owner : Any
            Owning context
        resource : Any
            Resource instance or handle

        Raises
        ------
        UnregisteredResourceError
            If no registered kind knows how to dispose of ``resource``
        Exception
            Whatever the native disposal operation raised
        """
        disposal_method = self.manager.disposal_method(resource)

        source = resource
        ownership = self.ownership(owner)
        if ownership is not None:
            tracked = ownership.discard(resource)
            if tracked is not None:
                source = tracked

        if not self.bus.publish(source, RESOURCE_PRE_DISPOSAL):
            logger.debug("Disposal of %r vetoed by a subscriber", source)
            return

        try:
            getattr(unwrap(resource), disposal_method)()
        except Exception as e:
            logger.debug("Disposal of %r failed: %s", source, e)
            self.bus.publish(source, RESOURCE_DISPOSAL_FAILED, e)
            raise

        self.bus.publish(source, RESOURCE_DISPOSED)

    def cleanup_resources(self, owner: Any) -> None:
        """Dispose of everything ``owner`` still holds, newest first.

        Every disposal is attempted. The owner's set is dropped afterwards
        even if some disposals failed; the first failure is then re-raised and
        any later ones are logged.

        Parameters
        ----------
        owner : Any
            Owning context
        """
        ownership = self._owned.get(id(owner))
        if ownership is None:
            return

        first_error: Exception | None = None
        try:
            for resource in reversed(list(ownership)):
                if resource not in ownership:
                    # Already released while disposing of a dependent resource
                    continue
                try:
                    self.dispose_resource(owner, resource)
                except Exception as e:
                    if first_error is None:
                        first_error = e
                    else:
                        logger.warning("Cleanup failed for %r: %s", resource, e)
        finally:
            self._owned.pop(id(owner), None)

        if first_error is not None:
            raise first_error
