"""Handles wrapping acquired resources."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

_HANDLE_ATTRIBUTES = frozenset({"__wrapped__", "_disposal_method", "_dispose", "_owner"})


class ResourceHandle:
    """Proxy for an acquired resource that routes disposal through a tracker.

    Attribute access, iteration, subscripts, ``len``, ``in`` and calls are
    forwarded to the wrapped instance, and ``isinstance`` checks see the
    wrapped instance's class. The resource kind's disposal operation
    (``close`` by default) is replaced by a call to the owning tracker, so
    disposing of the handle directly or through bulk cleanup follows the same
    path. Using the handle as a context manager disposes of it on exit, like
    :func:`contextlib.closing`.

    Only this handle is affected; other instances of the same kind acquired
    elsewhere keep their native disposal behaviour.

    Parameters
    ----------
    wrapped : Any
        Acquired resource instance
    disposal_method : str
        Name of the operation that releases the resource
    dispose : Callable[[ResourceHandle], None]
        Tracked disposal path, called with this handle
    owner : Any
        Owning context the resource was acquired for
    """

    def __init__(
        self,
        wrapped: Any,
        disposal_method: str,
        dispose: Callable[[ResourceHandle], None],
        owner: Any = None,
    ) -> None:
        object.__setattr__(self, "__wrapped__", wrapped)
        object.__setattr__(self, "_disposal_method", disposal_method)
        object.__setattr__(self, "_dispose", dispose)
        object.__setattr__(self, "_owner", owner)

    @property  # type: ignore[misc]
    def __class__(self) -> type:
        return type(self.__wrapped__)

    def __getattr__(self, name: str) -> Any:
        if name in _HANDLE_ATTRIBUTES:
            raise AttributeError(name)
        if name == self._disposal_method:
            return self._dispose_via_tracker
        return getattr(self.__wrapped__, name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _HANDLE_ATTRIBUTES:
            object.__setattr__(self, name, value)
        else:
            setattr(self.__wrapped__, name, value)

    def __delattr__(self, name: str) -> None:
        if name in _HANDLE_ATTRIBUTES:
            raise AttributeError(f"cannot delete handle attribute '{name}'")
        delattr(self.__wrapped__, name)

    def _dispose_via_tracker(self) -> None:
        self._dispose(self)

    def __enter__(self) -> ResourceHandle:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._dispose(self)

    def __iter__(self) -> Any:
        return iter(self.__wrapped__)

    def __next__(self) -> Any:
        return next(self.__wrapped__)

    def __bool__(self) -> bool:
        return bool(self.__wrapped__)

    # Operators are looked up on the type, so __getattr__ never sees them
    def __getitem__(self, key: Any) -> Any:
        return self.__wrapped__[key]

    def __setitem__(self, key: Any, value: Any) -> None:
        self.__wrapped__[key] = value

    def __delitem__(self, key: Any) -> None:
        del self.__wrapped__[key]

    def __len__(self) -> int:
        return len(self.__wrapped__)

    def __contains__(self, item: Any) -> bool:
        return item in self.__wrapped__

    def __reversed__(self) -> Any:
        return reversed(self.__wrapped__)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.__wrapped__(*args, **kwargs)

    def __eq__(self, other: object) -> bool:
        return unwrap(other) is self.__wrapped__

    def __hash__(self) -> int:
        return id(self.__wrapped__)

    def __repr__(self) -> str:
        return f"<ResourceHandle for {self.__wrapped__!r}>"


def unwrap(resource: Any) -> Any:
    """Return the instance behind a handle, or ``resource`` itself.

    Parameters
    ----------
    resource : Any
        A :class:`ResourceHandle` or a plain resource instance

    Returns
    -------
    Any
        The underlying resource instance
    """
    if type(resource) is ResourceHandle:
        return object.__getattribute__(resource, "__wrapped__")
    return resource


def is_handle(resource: Any) -> bool:
    """Check whether ``resource`` is a :class:`ResourceHandle`."""
    return type(resource) is ResourceHandle
