"""Exception hierarchy for batchkit."""

from __future__ import annotations

from typing import Any


class BatchKitError(Exception):
    """Base exception for all batchkit errors."""

    pass


class ResourceError(BatchKitError):
    """Base exception for resource registration and tracking errors."""

    pass


class DuplicateRegistrationError(ResourceError, ValueError):
    """Raised when a helper name is already bound to a different resource kind.

    Parameters
    ----------
    helper_name : str
        Helper operation name that is already taken
    existing_kind : type
        Kind currently bound to the helper name
    """

    def __init__(self, helper_name: str, existing_kind: type) -> None:
        super().__init__(
            f"Resource acquisition helper '{helper_name}' is already registered "
            f"for {existing_kind.__qualname__}"
        )
        self.helper_name = helper_name
        self.existing_kind = existing_kind


class MissingDisposalOperationError(ResourceError, ValueError):
    """Raised when a resource kind does not define its disposal operation."""

    def __init__(self, kind: type, disposal_method: str) -> None:
        super().__init__(
            f"No method named '{disposal_method}' is defined on {kind.__qualname__}"
        )
        self.kind = kind
        self.disposal_method = disposal_method


class ConflictingDisposalOperationError(ResourceError, ValueError):
    """Raised when a kind is re-registered with a different disposal operation."""

    def __init__(self, kind: type, registered: str, requested: str) -> None:
        super().__init__(
            f"Resource class {kind.__qualname__} has already been registered "
            f"with a different disposal method (#{registered}, not #{requested})"
        )
        self.kind = kind
        self.registered = registered
        self.requested = requested


class UnregisteredResourceError(ResourceError, LookupError):
    """Raised when no registered resource kind matches an instance."""

    def __init__(self, resource: Any) -> None:
        super().__init__(
            f"No registered resource class matches '{type(resource).__qualname__}'"
        )
        self.resource = resource


class TypeMismatchError(ResourceError, TypeError):
    """Raised when an acquisition body returns an object of the wrong kind."""

    def __init__(self, kind: type, result: Any) -> None:
        super().__init__(
            f"Returned resource is of type {type(result).__qualname__}, "
            f"not {kind.__qualname__}"
        )
        self.kind = kind
        self.result = result


class UnknownHelperError(ResourceError, AttributeError):
    """Raised when an acquisition helper name has not been registered."""

    def __init__(self, helper_name: str) -> None:
        super().__init__(f"No resource acquisition helper named '{helper_name}'")
        self.helper_name = helper_name


class ConfigurationError(BatchKitError, ValueError):
    """Raised when batchkit configuration is invalid."""

    pass
