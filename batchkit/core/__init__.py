"""Core batchkit functionality: event bus, resource registry and tracker."""

from __future__ import annotations

from batchkit.core.events import REGISTRY_LOCK, EventBus, Subscription
from batchkit.core.handles import ResourceHandle, is_handle, unwrap
from batchkit.core.helper import ResourceHelper
from batchkit.core.matchers import (
    CategoryMatcher,
    IdentityMatcher,
    SourceMatcher,
    WildcardMatcher,
    matcher_for,
    matches,
    matches_exactly,
)
from batchkit.core.registry import ResourceKind, ResourceManager
from batchkit.core.tracker import OwnershipSet, ResourceTracker

__all__ = [
    "REGISTRY_LOCK",
    "CategoryMatcher",
    "EventBus",
    "IdentityMatcher",
    "OwnershipSet",
    "ResourceHandle",
    "ResourceHelper",
    "ResourceKind",
    "ResourceManager",
    "ResourceTracker",
    "SourceMatcher",
    "Subscription",
    "WildcardMatcher",
    "is_handle",
    "matcher_for",
    "matches",
    "matches_exactly",
    "unwrap",
]
