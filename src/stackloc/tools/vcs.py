"""Git-backed stack and revision lookups.

The helpers below read stacked-git metadata (``refs/stacks/<branch>``) into
:class:`~stackloc.stack.snapshot.StackSnapshot` values and resolve revisions
with ``git rev-parse``. They are the concrete collaborators handed to the
revision resolver by the command line.
"""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path
from typing import Dict, Optional, Sequence

from pydantic import ValidationError

from ..patch.errors import AmbiguousCommitPrefix, InvalidPatchName, StackLocError, UnknownBranch, UnknownCommit
from ..patch.revspec import Commit
from ..stack.snapshot import StackMetadata, StackSnapshot

LOGGER = logging.getLogger(__name__)

STACK_REF_PREFIX = "refs/stacks/"
STACK_METADATA_PATH = "stack.json"
_PREVIOUS_BRANCH = re.compile(r"@\{-[0-9]+\}")
_AMBIGUOUS_CANDIDATE = re.compile(r"^hint:\s+([0-9a-f]{4,40})\s", re.MULTILINE)


class GitError(StackLocError):
    """Raised when a git command fails or the repository cannot be used."""


class GitRepository:
    """Lightweight wrapper around ``git`` commands."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()
        if not (self.root / ".git").exists():
            raise GitError(f"Not a git repository: {self.root}")

    @classmethod
    def discover(cls, start: Path | str | None = None) -> "GitRepository":
        """Locate the nearest git repository starting from ``start``."""

        path = Path(start or Path.cwd()).resolve()
        for candidate in (path, *path.parents):
            if (candidate / ".git").exists():
                return cls(candidate)
        raise GitError(f"Unable to locate a git repository from {path}")

    # ------------------------------------------------------------------ git IO
    def _run_git(self, args: Sequence[str], *, check: bool = True) -> subprocess.CompletedProcess[str]:
        command = ["git", *args]
        LOGGER.debug("Running %s in %s", " ".join(command), self.root)
        process = subprocess.run(
            command,
            cwd=self.root,
            capture_output=True,
            text=False,
            check=False,
        )
        stdout = process.stdout.decode("utf-8", errors="replace") if process.stdout else ""
        stderr = process.stderr.decode("utf-8", errors="replace") if process.stderr else ""
        result = subprocess.CompletedProcess(process.args, process.returncode, stdout, stderr)
        if check and result.returncode != 0:
            message = result.stderr.strip() or result.stdout.strip() or "unknown git error"
            raise GitError(f"git {' '.join(args)} failed: {message}")
        return result

    # -------------------------------------------------------------- branches
    def current_branch(self) -> str | None:
        """Return the current branch name or ``None`` when detached."""

        result = self._run_git(["symbolic-ref", "--quiet", "--short", "HEAD"], check=False)
        if result.returncode != 0:
            return None
        branch = result.stdout.strip()
        return branch or None

    def ref_exists(self, ref: str) -> bool:
        result = self._run_git(["rev-parse", "--verify", "--quiet", ref], check=False)
        return result.returncode == 0

    def previous_branch(self, spec: str) -> str | None:
        """Resolve ``@{-N}`` to the branch checked out N switches ago."""

        result = self._run_git(["rev-parse", "--symbolic-full-name", spec], check=False)
        full_name = result.stdout.strip()
        if result.returncode != 0 or not full_name.startswith("refs/heads/"):
            return None
        return full_name[len("refs/heads/"):]

    # ------------------------------------------------------------- revisions
    def rev_parse(self, revision: str) -> str:
        """Return the full id of the commit ``revision`` names."""

        if not revision or revision.startswith("-"):
            raise UnknownCommit(revision)
        result = self._run_git(["rev-parse", "--verify", f"{revision}^{{commit}}"], check=False)
        if result.returncode == 0:
            return result.stdout.strip()
        if "ambiguous" in result.stderr.lower():
            raise AmbiguousCommitPrefix(revision, _AMBIGUOUS_CANDIDATE.findall(result.stderr))
        raise UnknownCommit(revision)

    def commit_summary(self, oid: str) -> str:
        result = self._run_git(["log", "-1", "--format=%s", oid], check=True)
        return result.stdout.strip()

    def read_commit(self, revision: str) -> Commit:
        oid = self.rev_parse(revision)
        return Commit(id=oid, summary=self.commit_summary(oid))

    def show_blob(self, revision: str, path: str) -> str | None:
        """Return the contents of ``path`` at ``revision`` or ``None`` when absent."""

        result = self._run_git(["cat-file", "-p", f"{revision}:{path}"], check=False)
        if result.returncode != 0:
            return None
        return result.stdout


class GitStackReader:
    """Branch resolver reading stack snapshots from stacked-git metadata.

    Snapshots are cached per branch, so every lookup made through one reader
    sees the same stack state.
    """

    def __init__(self, repo: GitRepository) -> None:
        self.repo = repo
        self._snapshots: Dict[str, StackSnapshot] = {}

    def branch_name(self, branch: Optional[str]) -> str:
        if branch is None:
            current = self.repo.current_branch()
            if current is None:
                raise UnknownBranch(None, "HEAD is not on a branch")
            return current
        if _PREVIOUS_BRANCH.fullmatch(branch):
            previous = self.repo.previous_branch(branch)
            if previous is None:
                raise UnknownBranch(branch)
            return previous
        if not self.repo.ref_exists(f"refs/heads/{branch}"):
            raise UnknownBranch(branch)
        return branch

    def read_metadata(self, branch: str) -> StackMetadata:
        payload = self.repo.show_blob(f"{STACK_REF_PREFIX}{branch}", STACK_METADATA_PATH)
        if payload is None:
            raise UnknownBranch(branch, "branch has no stack metadata")
        try:
            return StackMetadata.model_validate_json(payload)
        except (ValidationError, InvalidPatchName) as error:
            raise GitError(f"Invalid stack metadata for branch {branch}: {error}") from error

    def __call__(self, branch: Optional[str]) -> StackSnapshot:
        name = self.branch_name(branch)
        cached = self._snapshots.get(name)
        if cached is not None:
            return cached

        metadata = self.read_metadata(name)
        first_applied = metadata.first_applied_commit
        base = self.repo.rev_parse(f"{first_applied}^" if first_applied else metadata.head)
        try:
            snapshot = metadata.to_snapshot(base)
        except ValidationError as error:
            raise GitError(f"Inconsistent stack metadata for branch {name}: {error}") from error
        LOGGER.debug(
            "Read stack for %s: %d applied, %d unapplied, %d hidden",
            name,
            len(snapshot.applied),
            len(snapshot.unapplied),
            len(snapshot.hidden),
        )
        self._snapshots[name] = snapshot
        return snapshot


class GitRevisionEngine:
    """Commit lookup and revision suffix interpretation backed by ``git``.

    Commits are cached by id so revisions resolving to the same commit share
    one :class:`Commit` object.
    """

    def __init__(self, repo: GitRepository) -> None:
        self.repo = repo
        self._commits: Dict[str, Commit] = {}

    def lookup(self, revision: str) -> Commit:
        oid = self.repo.rev_parse(revision)
        commit = self._commits.get(oid)
        if commit is None:
            commit = Commit(id=oid, summary=self.repo.commit_summary(oid))
            self._commits[oid] = commit
        return commit

    def apply_suffix(self, commit: Commit, suffix: str) -> Commit:
        return self.lookup(f"{commit.id}{suffix}")


__all__ = [
    "GitError",
    "GitRepository",
    "GitRevisionEngine",
    "GitStackReader",
    "STACK_METADATA_PATH",
    "STACK_REF_PREFIX",
]
