"""Patch identifiers and locators.

A locator is an anchor followed by an offset chain. The canonical anchor is a
patch name; other anchors use special syntax:

* ``{base}`` is the stack base. It is not a patch, so a positive offset is
  needed to land inside the stack (``{base}+1`` is the bottommost patch).
* ``@`` is the topmost applied patch. Locators made of offsets only, such as
  ``~1`` or ``+3``, are relative to it as well.
* ``^`` is the last visible patch. ``^3`` is three patches before it and
  ``^-3`` three patches after it, into the hidden patches.

Absolute indexes (``5``) and commit id prefixes (``3fa2c1``) cannot be told
apart from patch names syntactically. Parsing therefore yields a name
candidate and :func:`disambiguate` decides against the actual stack: a
candidate that names a patch is always that patch; only otherwise is it read
as an index or a commit id prefix.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Pattern, Tuple

from .constraint import LocationConstraint
from .errors import (
    AmbiguousCommitPrefix,
    ConstraintViolation,
    InvalidOffset,
    InvalidPatchName,
    MalformedSyntax,
    OutOfRangeIndex,
    UnknownPatch,
)
from .name import PatchName
from .offset import PatchOffsets, scan_offsets, trailing_offsets_start

if TYPE_CHECKING:
    from ..stack.snapshot import StackSnapshot

LOGGER = logging.getLogger(__name__)

BASE_TOKEN = "{base}"
TOP_TOKEN = "@"
LAST_TOKEN = "^"

_SIGNED_INT: Pattern[str] = re.compile(r"-?[0-9]+")
_INDEX: Pattern[str] = re.compile(r"[0-9]+")
_COMMIT_PREFIX: Pattern[str] = re.compile(r"[0-9a-fA-F]{4,40}")
_NAME_STOP_CHARS = frozenset("~^:?*[\\")
# Characters after "@" that keep it the top token instead of a name prefix.
_TOP_FOLLOWERS = frozenset("+~^:{")


class PatchIdKind(str, Enum):
    NAME = "name"
    BASE = "base"
    TOP = "top"
    BELOW_LAST = "below-last"
    BELOW_TOP = "below-top"


@dataclass(frozen=True, slots=True)
class PatchId:
    """Identifier for a patch or a position within the stack.

    ``BELOW_LAST`` carries an optional signed count before the last visible
    patch. ``BELOW_TOP`` carries an optional absolute index; without one it is
    the implicit anchor of offset-only locators.
    """

    kind: PatchIdKind
    name: PatchName | None = None
    count: int | None = None

    @classmethod
    def named(cls, name: str) -> "PatchId":
        return cls(PatchIdKind.NAME, name=PatchName.make(name))

    @classmethod
    def base(cls) -> "PatchId":
        return cls(PatchIdKind.BASE)

    @classmethod
    def top(cls) -> "PatchId":
        return cls(PatchIdKind.TOP)

    @classmethod
    def below_last(cls, count: int | None = None) -> "PatchId":
        return cls(PatchIdKind.BELOW_LAST, count=count)

    @classmethod
    def below_top(cls, index: int | None = None) -> "PatchId":
        if index is not None and index < 0:
            raise ValueError("absolute patch index may not be negative")
        return cls(PatchIdKind.BELOW_TOP, count=index)

    def __str__(self) -> str:
        if self.kind is PatchIdKind.NAME:
            return str(self.name)
        if self.kind is PatchIdKind.BASE:
            return BASE_TOKEN
        if self.kind is PatchIdKind.TOP:
            return TOP_TOKEN
        if self.kind is PatchIdKind.BELOW_LAST:
            return LAST_TOKEN if self.count is None else f"{LAST_TOKEN}{self.count}"
        return "" if self.count is None else str(self.count)


@dataclass(frozen=True, slots=True)
class PatchLocator:
    """Location of a patch within the stack: an anchor plus an offset chain."""

    id: PatchId
    offsets: PatchOffsets = PatchOffsets()

    @classmethod
    def parse(cls, text: str) -> "PatchLocator":
        return parse_locator(text)

    def resolve_name(
        self,
        snapshot: "StackSnapshot",
        constraint: LocationConstraint = LocationConstraint.ALL,
    ) -> PatchName:
        return resolve_locator(self, snapshot, constraint)

    def __str__(self) -> str:
        return f"{self.id}{self.offsets}"


# ------------------------------------------------------------------ parsing
def _at_top_token(text: str, position: int) -> bool:
    following = position + 1
    if following == len(text):
        return True
    return text[following] in _TOP_FOLLOWERS or text.startswith("..", following)


def _scan_name(text: str, position: int) -> int:
    while position < len(text):
        char = text[position]
        if char in _NAME_STOP_CHARS or char.isspace() or ord(char) < 0x20 or ord(char) == 0x7F:
            break
        if text.startswith("..", position) or text.startswith("@{", position):
            break
        position += 1
    return position


def _scan_anchor(text: str, position: int, *, kind: str) -> Tuple[PatchId, int]:
    if text.startswith(BASE_TOKEN, position):
        return PatchId.base(), position + len(BASE_TOKEN)
    if text.startswith(TOP_TOKEN, position) and _at_top_token(text, position):
        return PatchId.top(), position + 1
    if text.startswith(LAST_TOKEN, position):
        match = _SIGNED_INT.match(text, position + 1)
        if match:
            return PatchId.below_last(int(match.group(0))), match.end()
        return PatchId.below_last(), position + 1
    if position < len(text) and text[position] in "+~":
        return PatchId.below_top(), position

    end = _scan_name(text, position)
    raw = text[position:end]
    if not raw:
        raise MalformedSyntax(kind, text, "expected a patch name, `@`, `^` or `{base}`")
    try:
        name = PatchName.make(raw)
    except InvalidPatchName as error:
        raise MalformedSyntax(kind, text, error.reason) from error
    return PatchId(PatchIdKind.NAME, name=name), end


def scan_locator(text: str, position: int = 0, *, kind: str = "patch locator") -> Tuple[PatchLocator, int]:
    """Parse the locator starting at ``position`` and return it with its end position.

    Scanning stops at the first character that cannot continue the locator;
    callers decide whether the remainder is acceptable.
    """

    patch_id, end = _scan_anchor(text, position, kind=kind)
    offsets_end = scan_offsets(text, end)
    return PatchLocator(patch_id, PatchOffsets(text[end:offsets_end])), offsets_end


def parse_locator(text: str) -> PatchLocator:
    """Parse ``text`` as a single patch locator without consulting any stack."""

    if not text:
        raise MalformedSyntax("patch locator", text, "empty locator")
    locator, end = scan_locator(text)
    if end != len(text):
        raise MalformedSyntax("patch locator", text, f"unexpected `{text[end:]}`")
    return locator


# ----------------------------------------------------------- disambiguation
def disambiguate(locator: PatchLocator, snapshot: "StackSnapshot") -> PatchLocator:
    """Return an equivalent locator whose anchor no longer depends on patch names.

    Name candidates that exist in ``snapshot`` are kept. Otherwise trailing
    offsets are split off the candidate (``p0+1`` becomes ``p0`` and ``+1``)
    and the remaining stem is tried as a patch name, an absolute index and a
    commit id prefix, in that order.
    """

    if locator.id.kind is not PatchIdKind.NAME:
        return locator
    name = locator.id.name
    assert name is not None
    if snapshot.contains(name):
        return locator

    split = trailing_offsets_start(name)
    stem = name[:split]
    offsets = PatchOffsets(name[split:]) + locator.offsets

    if not stem:
        return PatchLocator(PatchId.below_top(), offsets)
    if split < len(name) and snapshot.contains(stem):
        LOGGER.debug("Reading `%s` as patch `%s` with offsets `%s`", name, stem, name[split:])
        return PatchLocator(PatchId.named(stem), offsets)
    if _INDEX.fullmatch(stem):
        LOGGER.debug("No patch named `%s`; reading it as absolute index %s", name, stem)
        return PatchLocator(PatchId.below_top(int(stem)), offsets)
    if _COMMIT_PREFIX.fullmatch(stem):
        prefix = stem.lower()
        matches = [
            patch
            for patch in snapshot.all_patches
            if (snapshot.commit_of(patch) or "").lower().startswith(prefix)
        ]
        if len(matches) > 1:
            raise AmbiguousCommitPrefix(stem, [str(item) for item in matches])
        if matches:
            LOGGER.debug("Commit id prefix `%s` matches patch `%s`", stem, matches[0])
            return PatchLocator(PatchId(PatchIdKind.NAME, name=matches[0]), offsets)
    raise UnknownPatch(name, similar=snapshot.similar_names(name))


# --------------------------------------------------------------- resolution
def _anchor_index(patch_id: PatchId, snapshot: "StackSnapshot") -> int:
    if patch_id.kind is PatchIdKind.NAME:
        assert patch_id.name is not None
        return snapshot.index_of(patch_id.name)
    if patch_id.kind is PatchIdKind.BASE:
        return -1
    if patch_id.kind is PatchIdKind.TOP:
        return snapshot.top_index
    if patch_id.kind is PatchIdKind.BELOW_LAST:
        return len(snapshot.visible) - 1 - (patch_id.count or 0)
    if patch_id.count is None:
        return snapshot.top_index
    return patch_id.count


def resolve_position(
    locator: PatchLocator,
    snapshot: "StackSnapshot",
    *,
    allow_below_base: bool = False,
) -> int:
    """Return the canonical stack index ``locator`` points at.

    ``-1`` is the stack base. Indexes below it are only produced when
    ``allow_below_base`` is set; they stand for ancestors of the base commit.
    Each offset step is checked, so a chain may not wander outside the stack
    and come back.
    """

    text = str(locator)
    located = disambiguate(locator, snapshot)
    total = snapshot.total
    index = _anchor_index(located.id, snapshot)

    if index >= total or (index < -1 and not allow_below_base):
        raise OutOfRangeIndex(text, index, total)
    if located.id.kind is PatchIdKind.BASE and not allow_below_base and located.offsets.net() <= 0:
        raise InvalidOffset(text, "the stack base is not a patch; a positive offset is required")

    for delta in located.offsets.deltas():
        index += delta
        if index >= total or (index < -1 and not allow_below_base):
            raise OutOfRangeIndex(text, index, total)
    return index


def resolve_locator(
    locator: PatchLocator,
    snapshot: "StackSnapshot",
    constraint: LocationConstraint = LocationConstraint.ALL,
) -> PatchName:
    """Resolve ``locator`` to a patch name allowed by ``constraint``."""

    index = resolve_position(locator, snapshot)
    if index < 0:
        raise InvalidOffset(str(locator), "resolves to the stack base, which is not a patch")
    name = snapshot.all_patches[index]
    group = snapshot.group_at(index)
    if not constraint.allows(group):
        raise ConstraintViolation(name, group.value, [item.value for item in constraint.groups])
    return name


__all__ = [
    "PatchId",
    "PatchIdKind",
    "PatchLocator",
    "disambiguate",
    "parse_locator",
    "resolve_locator",
    "resolve_position",
    "scan_locator",
]
