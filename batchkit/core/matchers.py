"""Subscription source matchers.

A matcher decides whether the source of a published event is relevant to a
subscriber. Matchers are plain values; all matching logic lives in
:func:`matches` so the precedence order is defined in exactly one place:

1. wildcard matches anything;
2. identity or equality with the registered source;
3. category membership, when the registered source is a class;
4. delegation to the candidate's owning context, recursively.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from batchkit.constants import OWNER_ATTRIBUTE


@dataclass(frozen=True)
class WildcardMatcher:
    """Matches every source. Used when no source is given at subscribe time."""

    @property
    def source(self) -> None:
        return None


@dataclass(frozen=True, eq=False)
class IdentityMatcher:
    """Matches a specific source object.

    Attributes
    ----------
    source : Any
        Object events must originate from (or be owned by)
    """

    source: Any


@dataclass(frozen=True, eq=False)
class CategoryMatcher:
    """Matches any source belonging to a class or runtime-checkable protocol.

    Attributes
    ----------
    source : type
        Class whose instances or subclasses are matched
    """

    source: type


SourceMatcher = Union[WildcardMatcher, IdentityMatcher, CategoryMatcher]

_WILDCARD = WildcardMatcher()


def matcher_for(source: Any) -> SourceMatcher:
    """Build the matcher variant for a subscription source.

    Parameters
    ----------
    source : Any
        Source passed to ``subscribe``; None subscribes to every source

    Returns
    -------
    SourceMatcher
        Matcher for the source
    """
    if source is None:
        return _WILDCARD
    if isinstance(source, type):
        return CategoryMatcher(source)
    return IdentityMatcher(source)


def matches(matcher: SourceMatcher, candidate: Any) -> bool:
    """Check whether ``candidate`` satisfies ``matcher``.

    Parameters
    ----------
    matcher : SourceMatcher
        Matcher to evaluate
    candidate : Any
        Source of a published event

    Returns
    -------
    bool
        True if the first applicable rule accepts the candidate
    """
    return _matches(matcher, candidate, set())


def matches_exactly(matcher: SourceMatcher, candidate: Any) -> bool:
    """Check literal source equality, ignoring category and owner delegation.

    Used for unsubscription so that removing a specific source never removes
    wildcard or category subscriptions.

    Parameters
    ----------
    matcher : SourceMatcher
        Matcher to evaluate
    candidate : Any
        Source passed to ``unsubscribe``

    Returns
    -------
    bool
        True if the matcher was registered for exactly this source
    """
    if isinstance(matcher, WildcardMatcher):
        return candidate is None
    if candidate is None:
        return False
    return _same(matcher.source, candidate)


def _matches(matcher: SourceMatcher, candidate: Any, seen: set[int]) -> bool:
    if isinstance(matcher, WildcardMatcher):
        return True

    if _same(matcher.source, candidate):
        return True

    if isinstance(matcher, CategoryMatcher) and _belongs_to(candidate, matcher.source):
        return True

    owner = getattr(candidate, OWNER_ATTRIBUTE, None)
    if owner is None or id(owner) in seen:
        return False
    seen.add(id(candidate))
    return _matches(matcher, owner, seen)


def _same(source: Any, candidate: Any) -> bool:
    if source is candidate:
        return True
    try:
        return bool(source == candidate)
    except Exception:
        return False


def _belongs_to(candidate: Any, category: type) -> bool:
    try:
        if isinstance(candidate, category):
            return True
        return isinstance(candidate, type) and issubclass(candidate, category)
    except TypeError:
        # Protocols with data members reject issubclass
        return False
