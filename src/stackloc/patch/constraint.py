"""Policies restricting which stack locations a locator or range may name."""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet, Tuple


class LocationGroup(str, Enum):
    """The three disjoint groups of patches within a stack.

    The stack consists of all the applied patches, then the unapplied ones,
    followed by any hidden patches.
    """

    APPLIED = "applied"
    UNAPPLIED = "unapplied"
    HIDDEN = "hidden"


STACK_ORDER: Tuple[LocationGroup, ...] = (
    LocationGroup.APPLIED,
    LocationGroup.UNAPPLIED,
    LocationGroup.HIDDEN,
)
_VISIBLE = frozenset({LocationGroup.APPLIED, LocationGroup.UNAPPLIED})
_ALL = frozenset(STACK_ORDER)


def _ordered(groups: FrozenSet[LocationGroup]) -> Tuple[LocationGroup, ...]:
    return tuple(group for group in STACK_ORDER if group in groups)


class LocationConstraint(str, Enum):
    """Restricts a single patch location to a subset of the stack."""

    ALL = "all"
    VISIBLE = "visible"
    APPLIED = "applied"
    UNAPPLIED = "unapplied"
    HIDDEN = "hidden"

    @property
    def groups(self) -> Tuple[LocationGroup, ...]:
        return _ordered(_LOCATION_GROUPS[self])

    def allows(self, group: LocationGroup) -> bool:
        return group in _LOCATION_GROUPS[self]


_LOCATION_GROUPS = {
    LocationConstraint.ALL: _ALL,
    LocationConstraint.VISIBLE: _VISIBLE,
    LocationConstraint.APPLIED: frozenset({LocationGroup.APPLIED}),
    LocationConstraint.UNAPPLIED: frozenset({LocationGroup.UNAPPLIED}),
    LocationConstraint.HIDDEN: frozenset({LocationGroup.HIDDEN}),
}


class RangeConstraint(str, Enum):
    """Restricts the members of a patch range and decides where open ends stop.

    ``ALL_WITH_APPLIED_BOUNDARY`` and ``VISIBLE_WITH_APPLIED_BOUNDARY`` allow the
    same patches as ``ALL`` and ``VISIBLE`` but stop an open-ended range at the
    last applied patch when the range begins with an applied patch.
    """

    ALL = "all"
    ALL_WITH_APPLIED_BOUNDARY = "all-with-applied-boundary"
    VISIBLE = "visible"
    VISIBLE_WITH_APPLIED_BOUNDARY = "visible-with-applied-boundary"
    APPLIED = "applied"
    UNAPPLIED = "unapplied"
    HIDDEN = "hidden"

    @property
    def groups(self) -> Tuple[LocationGroup, ...]:
        return _ordered(_RANGE_GROUPS[self])

    @property
    def applied_boundary(self) -> bool:
        return self in (RangeConstraint.ALL_WITH_APPLIED_BOUNDARY, RangeConstraint.VISIBLE_WITH_APPLIED_BOUNDARY)

    def allows(self, group: LocationGroup) -> bool:
        return group in _RANGE_GROUPS[self]

    def as_location(self) -> LocationConstraint:
        """The single-location constraint admitting the same groups."""

        return _RANGE_AS_LOCATION[self]


_RANGE_GROUPS = {
    RangeConstraint.ALL: _ALL,
    RangeConstraint.ALL_WITH_APPLIED_BOUNDARY: _ALL,
    RangeConstraint.VISIBLE: _VISIBLE,
    RangeConstraint.VISIBLE_WITH_APPLIED_BOUNDARY: _VISIBLE,
    RangeConstraint.APPLIED: frozenset({LocationGroup.APPLIED}),
    RangeConstraint.UNAPPLIED: frozenset({LocationGroup.UNAPPLIED}),
    RangeConstraint.HIDDEN: frozenset({LocationGroup.HIDDEN}),
}

_RANGE_AS_LOCATION = {
    RangeConstraint.ALL: LocationConstraint.ALL,
    RangeConstraint.ALL_WITH_APPLIED_BOUNDARY: LocationConstraint.ALL,
    RangeConstraint.VISIBLE: LocationConstraint.VISIBLE,
    RangeConstraint.VISIBLE_WITH_APPLIED_BOUNDARY: LocationConstraint.VISIBLE,
    RangeConstraint.APPLIED: LocationConstraint.APPLIED,
    RangeConstraint.UNAPPLIED: LocationConstraint.UNAPPLIED,
    RangeConstraint.HIDDEN: LocationConstraint.HIDDEN,
}


__all__ = ["LocationConstraint", "LocationGroup", "RangeConstraint", "STACK_ORDER"]
