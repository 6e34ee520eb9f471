"""Abstractions for naming patches, patch ranges and revisions within a stack."""

from .constraint import LocationConstraint, LocationGroup, RangeConstraint
from .errors import (
    AmbiguousCommitPrefix,
    ConstraintViolation,
    DuplicatePatch,
    EmptyRange,
    InvalidOffset,
    InvalidPatchName,
    InvertedRange,
    MalformedSyntax,
    NonContiguousRange,
    OutOfRangeIndex,
    StackLocError,
    UnknownBranch,
    UnknownCommit,
    UnknownPatch,
)
from .locator import PatchId, PatchIdKind, PatchLocator, disambiguate, parse_locator, resolve_locator, resolve_position
from .name import PatchName
from .offset import OffsetKind, PatchOffsetAtom, PatchOffsets
from .range import (
    PatchRange,
    PatchRangeBounds,
    parse_range,
    resolve_range,
    resolve_ranges,
    resolve_ranges_contiguous,
)
from .revspec import (
    BranchRangeSpec,
    BranchResolver,
    BranchRevisionSpec,
    Commit,
    GitLikeSpec,
    GitRevisionSuffix,
    PatchAndGitLikeSpec,
    PatchLikeSpec,
    RangeRevisionSpec,
    RevisionEngine,
    SingleRevisionSpec,
    StGitBoundaryRevisions,
    StGitRevision,
    parse_revision_spec,
    parse_single_revision,
    resolve_range_revision_spec,
    resolve_revision_spec,
)

__all__ = [
    "AmbiguousCommitPrefix",
    "BranchRangeSpec",
    "BranchResolver",
    "BranchRevisionSpec",
    "Commit",
    "ConstraintViolation",
    "DuplicatePatch",
    "EmptyRange",
    "GitLikeSpec",
    "GitRevisionSuffix",
    "InvalidOffset",
    "InvalidPatchName",
    "InvertedRange",
    "LocationConstraint",
    "LocationGroup",
    "MalformedSyntax",
    "NonContiguousRange",
    "OffsetKind",
    "OutOfRangeIndex",
    "PatchAndGitLikeSpec",
    "PatchId",
    "PatchIdKind",
    "PatchLikeSpec",
    "PatchLocator",
    "PatchName",
    "PatchOffsetAtom",
    "PatchOffsets",
    "PatchRange",
    "PatchRangeBounds",
    "RangeConstraint",
    "RangeRevisionSpec",
    "RevisionEngine",
    "SingleRevisionSpec",
    "StGitBoundaryRevisions",
    "StGitRevision",
    "StackLocError",
    "UnknownBranch",
    "UnknownCommit",
    "UnknownPatch",
    "disambiguate",
    "parse_locator",
    "parse_range",
    "parse_revision_spec",
    "parse_single_revision",
    "resolve_locator",
    "resolve_position",
    "resolve_range",
    "resolve_range_revision_spec",
    "resolve_ranges",
    "resolve_ranges_contiguous",
    "resolve_revision_spec",
]
