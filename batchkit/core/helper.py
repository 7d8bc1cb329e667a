"""Mixin giving owning contexts resource acquisition helpers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from batchkit.core.registry import ResourceManager


class ResourceHelper:
    """Mixin for objects that acquire resources and clean them up.

    Every helper name registered with the resource manager becomes callable
    on the object, e.g. ``self.get_file(path)``. Resources acquired that way
    are tracked against the object and released by :meth:`cleanup_resources`
    in reverse acquisition order, or individually when their disposal
    operation is called.

    The manager is taken from the ``resource_manager`` attribute, falling
    back to the process-wide default runtime when it is not set.

    Attributes
    ----------
    resource_manager : ResourceManager | None
        Manager to acquire resources from
    """

    resource_manager: ResourceManager | None = None

    def _manager(self) -> ResourceManager:
        if self.resource_manager is not None:
            return self.resource_manager
        from batchkit.runtime import default_runtime

        return default_runtime().manager

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        manager = self.resource_manager
        if manager is None:
            # Looking up a helper must not create the default runtime
            from batchkit.runtime import current_default_runtime

            runtime = current_default_runtime()
            manager = runtime.manager if runtime is not None else None
        if manager is not None and name in manager:
            return manager.bind(self, name)
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    def acquire_resource(self, helper_name: str, *args: Any, **kwargs: Any) -> Any:
        """Acquire a resource by helper name, e.g. when the name is dynamic."""
        return self._manager().acquire(self, helper_name, *args, **kwargs)

    def add_resource(self, resource: Any) -> None:
        """Track a resource acquired outside the helper operations."""
        self._manager().tracker.add_resource(self, resource)

    def dispose_resource(self, resource: Any) -> None:
        """Dispose of one resource held by this object."""
        self._manager().tracker.dispose_resource(self, resource)

    def cleanup_resources(self) -> None:
        """Dispose of every resource this object still holds."""
        self._manager().tracker.cleanup_resources(self)

    @property
    def held_resources(self) -> list[Any]:
        """Resources currently held, in acquisition order."""
        return self._manager().tracker.resources_of(self)
