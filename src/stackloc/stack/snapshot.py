"""Read-only views of a patch stack used during locator resolution."""

from __future__ import annotations

import difflib
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..patch.constraint import LocationGroup
from ..patch.name import PatchName

SUPPORTED_STACK_VERSION = 5


class StackSnapshot(BaseModel):
    """Immutable snapshot of a stack taken at one consistent point in time.

    Patches are partitioned into applied, unapplied and hidden groups whose
    concatenation is the canonical stack order. ``base`` is the commit below
    the bottommost applied patch and ``top`` the commit of the topmost applied
    patch (equal to ``base`` when nothing is applied).
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    applied: Tuple[PatchName, ...] = ()
    unapplied: Tuple[PatchName, ...] = ()
    hidden: Tuple[PatchName, ...] = ()
    base: str
    top: str
    patch_commits: Dict[PatchName, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_partitions(self) -> "StackSnapshot":
        seen: set[str] = set()
        for name in self.all_patches:
            if name in seen:
                raise ValueError(f"patch `{name}` appears more than once in the stack")
            seen.add(name)
        unknown = sorted(name for name in self.patch_commits if name not in seen)
        if unknown:
            raise ValueError(f"commit recorded for unknown patch(es): {', '.join(unknown)}")
        return self

    # ---------------------------------------------------------------- views
    @property
    def all_patches(self) -> Tuple[PatchName, ...]:
        return self.applied + self.unapplied + self.hidden

    @property
    def visible(self) -> Tuple[PatchName, ...]:
        return self.applied + self.unapplied

    @property
    def total(self) -> int:
        return len(self.applied) + len(self.unapplied) + len(self.hidden)

    @property
    def top_index(self) -> int:
        """Index of the topmost applied patch; ``-1`` (the base) when none is applied."""

        return len(self.applied) - 1

    def patches_in(self, group: LocationGroup) -> Tuple[PatchName, ...]:
        if group is LocationGroup.APPLIED:
            return self.applied
        if group is LocationGroup.UNAPPLIED:
            return self.unapplied
        return self.hidden

    # -------------------------------------------------------------- lookups
    def contains(self, name: str) -> bool:
        return name in self.applied or name in self.unapplied or name in self.hidden

    def index_of(self, name: str) -> int:
        """Return the canonical index of ``name``; raises :class:`KeyError` when absent."""

        for index, candidate in enumerate(self.all_patches):
            if candidate == name:
                return index
        raise KeyError(name)

    def group_at(self, index: int) -> LocationGroup:
        if index < 0 or index >= self.total:
            raise IndexError(index)
        if index < len(self.applied):
            return LocationGroup.APPLIED
        if index < len(self.applied) + len(self.unapplied):
            return LocationGroup.UNAPPLIED
        return LocationGroup.HIDDEN

    def group_of(self, name: str) -> LocationGroup:
        return self.group_at(self.index_of(name))

    def commit_of(self, name: str) -> Optional[str]:
        return self.patch_commits.get(name)

    def similar_names(self, name: str, *, limit: int = 3) -> List[str]:
        return difflib.get_close_matches(name, [str(item) for item in self.all_patches], n=limit)


class PatchMetadata(BaseModel):
    """Per-patch entry of the stack metadata document."""

    model_config = ConfigDict(extra="ignore")

    oid: str


class StackMetadata(BaseModel):
    """The ``stack.json`` document stored under ``refs/stacks/<branch>``."""

    model_config = ConfigDict(extra="ignore")

    version: int
    prev: Optional[str] = None
    head: str
    applied: List[PatchName] = Field(default_factory=list)
    unapplied: List[PatchName] = Field(default_factory=list)
    hidden: List[PatchName] = Field(default_factory=list)
    patches: Dict[PatchName, PatchMetadata] = Field(default_factory=dict)

    @field_validator("version")
    @classmethod
    def _supported_version(cls, value: int) -> int:
        if value != SUPPORTED_STACK_VERSION:
            raise ValueError(f"unsupported stack metadata version {value}")
        return value

    @model_validator(mode="after")
    def _patches_recorded(self) -> "StackMetadata":
        missing = [name for name in (*self.applied, *self.unapplied, *self.hidden) if name not in self.patches]
        if missing:
            raise ValueError(f"no commit recorded for patch(es): {', '.join(missing)}")
        return self

    @property
    def first_applied_commit(self) -> Optional[str]:
        if not self.applied:
            return None
        return self.patches[self.applied[0]].oid

    def to_snapshot(self, base: str) -> StackSnapshot:
        """Build a snapshot; ``base`` is the parent of the first applied patch's commit."""

        top = self.patches[self.applied[-1]].oid if self.applied else base
        listed = {*self.applied, *self.unapplied, *self.hidden}
        return StackSnapshot(
            applied=tuple(self.applied),
            unapplied=tuple(self.unapplied),
            hidden=tuple(self.hidden),
            base=base,
            top=top,
            patch_commits={name: entry.oid for name, entry in self.patches.items() if name in listed},
        )


__all__ = ["PatchMetadata", "StackMetadata", "StackSnapshot", "SUPPORTED_STACK_VERSION"]
