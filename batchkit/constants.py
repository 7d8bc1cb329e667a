"""Global constants for batchkit.

Event names are part of the public contract: subscribers outside this package
match on these exact strings, so they must not change.
"""

from enum import Enum

RESOURCE_REGISTERED = "resource.registered"
"""Published by the resource manager after a resource kind is registered.

Payload: ``(kind, helper_name)``.
"""

RESOURCE_PRE_ACQUIRE = "resource.pre_acquire"
"""Published before a resource is acquired. A falsy result vetoes acquisition.

Payload: the positional arguments passed to the helper operation.
"""

RESOURCE_ACQUIRED = "resource.acquired"
"""Published after a resource is acquired and tracked. Payload: ``(handle,)``."""

RESOURCE_ACQUISITION_FAILED = "resource.acquisition_failed"
"""Published when acquisition raises. Payload: ``(error,)``."""

RESOURCE_PRE_DISPOSAL = "resource.pre-disposal"
"""Published before a resource is disposed of. A falsy result vetoes disposal."""

RESOURCE_DISPOSED = "resource.disposed"
"""Published after the native disposal operation returned."""

RESOURCE_DISPOSAL_FAILED = "resource.disposal-failed"
"""Published when the native disposal operation raises. Payload: ``(error,)``."""

JOB_EXECUTE = "execute"
JOB_POST_EXECUTE = "post-execute"
JOB_FAILURE = "failure"

DEFAULT_ACQUISITION_METHOD = "open"
"""Class-level operation used to acquire a resource when no body is supplied."""

DEFAULT_DISPOSAL_METHOD = "close"
"""Instance operation used to release a resource."""

DEFAULT_CONFIG_FILE = "batchkit.yaml"
CONFIG_ENV_VAR = "BATCHKIT_CONFIG"
DEBUG_ENV_VAR = "BATCHKIT_DEBUG"

OWNER_ATTRIBUTE = "owner"
"""Attribute through which an event source exposes its owning context."""

TRACE = 5
DETAIL = 15


class RunStatus(Enum):
    """Lifecycle states of a job or task run."""

    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
