"""Revision specifications that may resolve inside or outside of a stack.

A revision specification resolves to a commit that may or may not have a
patch name attached. It can be a patch locator, optionally followed by a git
revision suffix (``{base}~^2`` is the second parent of the commit below the
stack base), a ``branch:`` qualified locator, or a plain git revision which
is handed to the revision engine untouched.

Patch ranges are allowed where :class:`RangeRevisionSpec` is parsed, but git
revision ranges are not: anything using ``..`` is a patch range.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional, Pattern, Protocol, Tuple, Union

from .constraint import RangeConstraint
from .errors import EmptyRange, MalformedSyntax, OutOfRangeIndex, UnknownBranch, UnknownCommit, UnknownPatch
from .locator import PatchIdKind, PatchLocator, disambiguate, resolve_position, scan_locator
from .name import PatchName
from .range import RANGE_SEPARATOR, PatchRangeBounds, parse_range_bounds, resolve_range, split_range

if TYPE_CHECKING:
    from ..stack.snapshot import StackSnapshot

LOGGER = logging.getLogger(__name__)

_SUFFIX: Pattern[str] = re.compile(r"(?:\^(?:[0-9]+|\{[^}]*\})?|~[0-9]*|@\{[^}]*\})+")
_PREVIOUS_BRANCH: Pattern[str] = re.compile(r"@\{-[0-9]+\}")
_BRANCH_STOP_CHARS = frozenset("~^:?*[\\")


@dataclass(frozen=True, slots=True)
class Commit:
    """A commit identified by its full object id."""

    id: str
    summary: str = ""

    def __str__(self) -> str:
        return self.id


class BranchResolver(Protocol):
    """Returns the stack snapshot of ``branch`` (``None`` for the current branch)."""

    def __call__(self, branch: Optional[str]) -> "StackSnapshot":
        ...


class RevisionEngine(Protocol):
    """Looks up commits and interprets git revision suffixes."""

    def lookup(self, revision: str) -> Commit:
        """Return the commit named by ``revision`` (commit id, prefix or any git revision)."""
        ...

    def apply_suffix(self, commit: Commit, suffix: str) -> Commit:
        """Return the commit ``suffix`` selects relative to ``commit``."""
        ...


# -------------------------------------------------------------------- specs
@dataclass(frozen=True, slots=True)
class GitRevisionSuffix:
    """Opaque git revision suffix such as ``^2`` or ``@{1}``."""

    text: str = ""

    def __bool__(self) -> bool:
        return bool(self.text)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True, slots=True)
class PatchLikeSpec:
    """A patch locator with an optional git revision suffix."""

    patch_loc: PatchLocator
    suffix: GitRevisionSuffix = GitRevisionSuffix()

    def __str__(self) -> str:
        return f"{self.patch_loc}{self.suffix}"


@dataclass(frozen=True, slots=True)
class BranchRevisionSpec:
    """``<branch>:<patch-like>``, resolved against another branch's stack."""

    branch: str
    patch_like: PatchLikeSpec

    def __str__(self) -> str:
        return f"{self.branch}:{self.patch_like}"


@dataclass(frozen=True, slots=True)
class PatchAndGitLikeSpec:
    """Text readable both as a patch locator and as a git revision.

    The patch reading wins when the patch exists; otherwise ``git_like`` is
    handed to the revision engine.
    """

    patch_like: PatchLikeSpec
    git_like: str

    def __str__(self) -> str:
        return self.git_like


@dataclass(frozen=True, slots=True)
class GitLikeSpec:
    """A git revision with no patch locator content."""

    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True, slots=True)
class BranchRangeSpec:
    """``<branch>:<range>``."""

    branch: str
    bounds: PatchRangeBounds

    def __str__(self) -> str:
        return f"{self.branch}:{self.bounds}"


SingleRevisionSpec = Union[BranchRevisionSpec, PatchAndGitLikeSpec, GitLikeSpec, PatchLikeSpec]
RangeRevisionSpec = Union[BranchRangeSpec, PatchRangeBounds, SingleRevisionSpec]


# ----------------------------------------------------------------- resolved
@dataclass(frozen=True, slots=True)
class StGitRevision:
    """A resolved revision: a commit and, when it is a patch, its name."""

    patchname: Optional[PatchName]
    commit: Commit


@dataclass(frozen=True, slots=True)
class StGitBoundaryRevisions:
    """Resolved revisions for a single spec or for both ends of a range."""

    first: StGitRevision
    last: Optional[StGitRevision] = None

    @property
    def is_single(self) -> bool:
        return self.last is None

    @property
    def bounds(self) -> Tuple[StGitRevision, StGitRevision]:
        return (self.first, self.first if self.last is None else self.last)


# ------------------------------------------------------------------ parsing
def _is_branch_name(text: str) -> bool:
    if _PREVIOUS_BRANCH.fullmatch(text):
        return True
    if not text or text.startswith("/") or text.endswith("/") or "//" in text:
        return False
    if any(char in _BRANCH_STOP_CHARS or char.isspace() for char in text):
        return False
    return all(PatchName.is_valid(part) for part in text.split("/"))


def _split_branch(text: str) -> Optional[Tuple[str, str]]:
    colon = text.find(":")
    if colon <= 0:
        return None
    branch = text[:colon]
    if not _is_branch_name(branch):
        return None
    return branch, text[colon + 1:]


def parse_patch_like(text: str) -> Optional[PatchLikeSpec]:
    """Parse ``text`` as a locator plus suffix; ``None`` when it is not one."""

    if not text:
        return None
    try:
        locator, end = scan_locator(text, kind="revision")
    except MalformedSyntax:
        return None
    suffix = text[end:]
    if suffix and not _SUFFIX.fullmatch(suffix):
        return None
    return PatchLikeSpec(locator, GitRevisionSuffix(suffix))


def parse_single_revision(text: str) -> SingleRevisionSpec:
    """Parse ``text`` as one revision; ranges are rejected."""

    if not text:
        raise MalformedSyntax("revision", text, "empty revision")
    if RANGE_SEPARATOR in text:
        raise MalformedSyntax("revision", text, "a range is not allowed here")

    qualified = _split_branch(text)
    if qualified is not None:
        branch, rest = qualified
        patch_like = parse_patch_like(rest)
        if patch_like is None:
            raise MalformedSyntax("revision", text, f"expected a patch locator after `{branch}:`")
        return BranchRevisionSpec(branch, patch_like)

    patch_like = parse_patch_like(text)
    if patch_like is None:
        return GitLikeSpec(text)
    if patch_like.patch_loc.id.kind is PatchIdKind.NAME:
        return PatchAndGitLikeSpec(patch_like, text)
    return patch_like


def parse_revision_spec(text: str) -> RangeRevisionSpec:
    """Parse ``text`` as a revision, a patch range or a branch-qualified range."""

    if not text:
        raise MalformedSyntax("revision", text, "empty revision")
    qualified = _split_branch(text)
    if qualified is not None and split_range(qualified[1]) is not None:
        branch, rest = qualified
        return BranchRangeSpec(branch, parse_range_bounds(rest))
    if RANGE_SEPARATOR in text:
        return parse_range_bounds(text)
    return parse_single_revision(text)


# --------------------------------------------------------------- resolution
def _patch_commit(
    name: PatchName,
    snapshot: "StackSnapshot",
    engine: RevisionEngine,
    cache: Dict[str, Commit],
) -> Commit:
    commit = cache.get(name)
    if commit is None:
        commit = engine.lookup(snapshot.commit_of(name) or name)
        cache[name] = commit
    return commit


def _resolve_patch_like(
    patch_like: PatchLikeSpec,
    snapshot: "StackSnapshot",
    engine: RevisionEngine,
    cache: Dict[str, Commit],
) -> StGitRevision:
    index = resolve_position(patch_like.patch_loc, snapshot, allow_below_base=True)
    patchname: Optional[PatchName]
    if index >= 0:
        patchname = snapshot.all_patches[index]
        commit = _patch_commit(patchname, snapshot, engine, cache)
    else:
        patchname = None
        depth = -1 - index
        commit = engine.lookup(snapshot.base if depth == 0 else f"{snapshot.base}~{depth}")
    if patch_like.suffix:
        commit = engine.apply_suffix(commit, str(patch_like.suffix))
        patchname = None
    return StGitRevision(patchname, commit)


def _reads_as_index(locator: PatchLocator, snapshot: "StackSnapshot") -> bool:
    """True when a name candidate was taken as an absolute index because no patch has that name."""

    if locator.id.kind is not PatchIdKind.NAME:
        return False
    located = disambiguate(locator, snapshot)
    return located.id.kind is PatchIdKind.BELOW_TOP and located.id.count is not None


def _current(snapshot: Optional["StackSnapshot"], branch_resolver: BranchResolver) -> "StackSnapshot":
    return snapshot if snapshot is not None else branch_resolver(None)


def resolve_revision_spec(
    spec: SingleRevisionSpec,
    snapshot: Optional["StackSnapshot"],
    branch_resolver: BranchResolver,
    engine: RevisionEngine,
) -> StGitRevision:
    """Resolve a single revision spec.

    ``snapshot`` is the current branch's stack; when ``None`` it is fetched
    from ``branch_resolver`` only if the spec needs it.
    """

    cache: Dict[str, Commit] = {}
    if isinstance(spec, GitLikeSpec):
        return StGitRevision(None, engine.lookup(spec.text))
    if isinstance(spec, BranchRevisionSpec):
        return _resolve_patch_like(spec.patch_like, branch_resolver(spec.branch), engine, cache)
    if isinstance(spec, PatchAndGitLikeSpec):
        try:
            stack = _current(snapshot, branch_resolver)
            return _resolve_patch_like(spec.patch_like, stack, engine, cache)
        except UnknownPatch:
            LOGGER.debug("`%s` is not a patch; resolving it as a git revision", spec.git_like)
        except UnknownBranch:
            LOGGER.debug("No stack on the current branch; resolving `%s` as a git revision", spec.git_like)
        except OutOfRangeIndex as error:
            if not _reads_as_index(spec.patch_like.patch_loc, stack):
                raise
            LOGGER.debug("Index `%s` is outside of the stack; resolving it as a git revision", spec.git_like)
            try:
                return StGitRevision(None, engine.lookup(spec.git_like))
            except UnknownCommit:
                raise error from None
        return StGitRevision(None, engine.lookup(spec.git_like))
    return _resolve_patch_like(spec, _current(snapshot, branch_resolver), engine, cache)


def resolve_range_revision_spec(
    spec: RangeRevisionSpec,
    snapshot: Optional["StackSnapshot"],
    branch_resolver: BranchResolver,
    engine: RevisionEngine,
    constraint: RangeConstraint = RangeConstraint.ALL,
) -> StGitBoundaryRevisions:
    """Resolve a revision or patch range to its boundary revisions.

    Both ends of a range over a single patch share one :class:`Commit`.
    """

    if isinstance(spec, BranchRangeSpec):
        stack = branch_resolver(spec.branch)
        bounds = spec.bounds
    elif isinstance(spec, PatchRangeBounds):
        stack = _current(snapshot, branch_resolver)
        bounds = spec
    else:
        return StGitBoundaryRevisions(resolve_revision_spec(spec, snapshot, branch_resolver, engine))

    names = resolve_range(bounds, stack, constraint)
    if not names:
        raise EmptyRange(str(bounds))
    cache: Dict[str, Commit] = {}
    first = StGitRevision(names[0], _patch_commit(names[0], stack, engine, cache))
    last = StGitRevision(names[-1], _patch_commit(names[-1], stack, engine, cache))
    return StGitBoundaryRevisions(first, last)


__all__ = [
    "BranchRangeSpec",
    "BranchResolver",
    "BranchRevisionSpec",
    "Commit",
    "GitLikeSpec",
    "GitRevisionSuffix",
    "PatchAndGitLikeSpec",
    "PatchLikeSpec",
    "RangeRevisionSpec",
    "RevisionEngine",
    "SingleRevisionSpec",
    "StGitBoundaryRevisions",
    "StGitRevision",
    "parse_patch_like",
    "parse_revision_spec",
    "parse_single_revision",
    "resolve_range_revision_spec",
    "resolve_revision_spec",
]
