"""batchkit - resource lifecycle management for batch jobs."""

from __future__ import annotations

from batchkit.core import (
    EventBus,
    ResourceHandle,
    ResourceHelper,
    ResourceManager,
    ResourceTracker,
    Subscription,
)
from batchkit.exceptions import (
    BatchKitError,
    ConfigurationError,
    ConflictingDisposalOperationError,
    DuplicateRegistrationError,
    MissingDisposalOperationError,
    ResourceError,
    TypeMismatchError,
    UnknownHelperError,
    UnregisteredResourceError,
)
from batchkit.lifecycle import Job, JobRun, JobRunner, TaskRun
from batchkit.runtime import Runtime, default_runtime, set_default_runtime

__version__ = "0.1.0"

__all__ = [
    "BatchKitError",
    "ConfigurationError",
    "ConflictingDisposalOperationError",
    "DuplicateRegistrationError",
    "EventBus",
    "Job",
    "JobRun",
    "JobRunner",
    "MissingDisposalOperationError",
    "ResourceError",
    "ResourceHandle",
    "ResourceHelper",
    "ResourceManager",
    "ResourceTracker",
    "Runtime",
    "Subscription",
    "TaskRun",
    "TypeMismatchError",
    "UnknownHelperError",
    "UnregisteredResourceError",
    "default_runtime",
    "set_default_runtime",
]
