"""Patch ranges: ``[<locator>]..[<locator>]`` or a single locator.

Both bounds are inclusive. A range without a begin starts at the first patch
of the groups its constraint allows, which is the bottommost applied patch
whenever applied patches are allowed and present. Where a range without an
end stops is decided by its :class:`RangeConstraint`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Tuple, Union

from .constraint import LocationGroup, RangeConstraint
from .errors import ConstraintViolation, DuplicatePatch, InvertedRange, MalformedSyntax, NonContiguousRange
from .locator import PatchLocator, parse_locator, resolve_locator
from .name import PatchName

if TYPE_CHECKING:
    from ..stack.snapshot import StackSnapshot

RANGE_SEPARATOR = ".."


@dataclass(frozen=True, slots=True)
class PatchRangeBounds:
    """Optional begin and end locators of a range; both are inclusive."""

    begin: Optional[PatchLocator] = None
    end: Optional[PatchLocator] = None

    def __str__(self) -> str:
        begin = "" if self.begin is None else str(self.begin)
        end = "" if self.end is None else str(self.end)
        return f"{begin}{RANGE_SEPARATOR}{end}"


# A range is either a single locator or a pair of optional bounds.
PatchRange = Union[PatchLocator, PatchRangeBounds]


def split_range(text: str) -> Optional[Tuple[str, str]]:
    """Split ``text`` at its range separator, or return ``None`` when it has none."""

    first = text.find(RANGE_SEPARATOR)
    if first < 0:
        return None
    if text.find(RANGE_SEPARATOR, first + len(RANGE_SEPARATOR)) >= 0:
        raise MalformedSyntax("patch range", text, f"more than one `{RANGE_SEPARATOR}`")
    return text[:first], text[first + len(RANGE_SEPARATOR):]


def parse_range_bounds(text: str) -> PatchRangeBounds:
    parts = split_range(text)
    if parts is None:
        raise MalformedSyntax("patch range", text, f"missing `{RANGE_SEPARATOR}`")
    begin_text, end_text = parts
    try:
        begin = parse_locator(begin_text) if begin_text else None
        end = parse_locator(end_text) if end_text else None
    except MalformedSyntax as error:
        raise MalformedSyntax("patch range", text, str(error)) from error
    return PatchRangeBounds(begin, end)


def parse_range(text: str) -> PatchRange:
    """Parse ``text`` as a range or, without a separator, a single locator."""

    if not text:
        raise MalformedSyntax("patch range", text, "empty range")
    if RANGE_SEPARATOR in text:
        return parse_range_bounds(text)
    return parse_locator(text)


# --------------------------------------------------------------- resolution
def _group_start(snapshot: "StackSnapshot", group: LocationGroup) -> int:
    if group is LocationGroup.APPLIED:
        return 0
    if group is LocationGroup.UNAPPLIED:
        return len(snapshot.applied)
    return len(snapshot.applied) + len(snapshot.unapplied)


def _first_index(snapshot: "StackSnapshot", groups: Sequence[LocationGroup]) -> Optional[int]:
    for group in groups:
        if snapshot.patches_in(group):
            return _group_start(snapshot, group)
    return None


def _last_index(snapshot: "StackSnapshot", groups: Sequence[LocationGroup]) -> Optional[int]:
    for group in reversed(groups):
        patches = snapshot.patches_in(group)
        if patches:
            return _group_start(snapshot, group) + len(patches) - 1
    return None


def _open_end_index(
    snapshot: "StackSnapshot",
    constraint: RangeConstraint,
    begin_index: Optional[int],
) -> Optional[int]:
    if constraint.applied_boundary and begin_index is not None and 0 <= begin_index < len(snapshot.applied):
        return len(snapshot.applied) - 1
    return _last_index(snapshot, constraint.groups)


def _bound_index(locator: PatchLocator, snapshot: "StackSnapshot", constraint: RangeConstraint) -> int:
    name = resolve_locator(locator, snapshot, constraint.as_location())
    return snapshot.index_of(name)


def resolve_range(
    patch_range: PatchRange,
    snapshot: "StackSnapshot",
    constraint: RangeConstraint = RangeConstraint.ALL,
) -> List[PatchName]:
    """Resolve ``patch_range`` to the ordered patch names it covers.

    Every member must belong to a group allowed by ``constraint``. A begin
    that comes after the end raises :class:`InvertedRange`; a fully open
    range over empty allowed groups is the only way to get an empty list.
    """

    if isinstance(patch_range, PatchLocator):
        return [resolve_locator(patch_range, snapshot, constraint.as_location())]

    groups = constraint.groups
    if patch_range.begin is not None:
        begin_index: Optional[int] = _bound_index(patch_range.begin, snapshot, constraint)
    else:
        begin_index = _first_index(snapshot, groups)

    if patch_range.end is not None:
        end_index: Optional[int] = _bound_index(patch_range.end, snapshot, constraint)
    else:
        end_index = _open_end_index(snapshot, constraint, begin_index)

    if begin_index is None or end_index is None:
        return []

    patches = snapshot.all_patches
    if begin_index > end_index:
        raise InvertedRange(patches[begin_index], patches[end_index])

    selected: List[PatchName] = []
    for index in range(begin_index, end_index + 1):
        group = snapshot.group_at(index)
        if not constraint.allows(group):
            raise ConstraintViolation(patches[index], group.value, [item.value for item in groups])
        selected.append(patches[index])
    return selected


def resolve_ranges(
    ranges: Iterable[PatchRange],
    snapshot: "StackSnapshot",
    constraint: RangeConstraint = RangeConstraint.ALL,
) -> List[PatchName]:
    """Resolve several ranges in argument order; no patch may be selected twice."""

    selected: List[PatchName] = []
    seen: set[str] = set()
    for patch_range in ranges:
        for name in resolve_range(patch_range, snapshot, constraint):
            if name in seen:
                raise DuplicatePatch(name)
            seen.add(name)
            selected.append(name)
    return selected


def resolve_ranges_contiguous(
    ranges: Iterable[PatchRange],
    snapshot: "StackSnapshot",
    constraint: RangeConstraint = RangeConstraint.ALL,
) -> List[PatchName]:
    """Like :func:`resolve_ranges`, but the selection must be one unbroken run.

    The result is returned in stack order.
    """

    selected = resolve_ranges(ranges, snapshot, constraint)
    ordered = sorted(selected, key=snapshot.index_of)
    for before, after in zip(ordered, ordered[1:]):
        if snapshot.index_of(after) != snapshot.index_of(before) + 1:
            raise NonContiguousRange(before, after)
    return ordered


__all__ = [
    "PatchRange",
    "PatchRangeBounds",
    "RANGE_SEPARATOR",
    "parse_range",
    "parse_range_bounds",
    "resolve_range",
    "resolve_ranges",
    "resolve_ranges_contiguous",
    "split_range",
]
