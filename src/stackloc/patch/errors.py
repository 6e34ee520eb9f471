"""Error taxonomy for patch locator parsing and resolution."""

from __future__ import annotations

from typing import Any, Mapping, Sequence


class StackLocError(RuntimeError):
    """Base class for every error raised while parsing or resolving locators."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details or {})


class InvalidPatchName(StackLocError):
    """Raised when a candidate string violates the patch naming rules."""

    def __init__(self, raw: str, reason: str) -> None:
        super().__init__(f"invalid patch name `{raw}`: {reason}", details={"name": raw, "reason": reason})
        self.raw = raw
        self.reason = reason


class MalformedSyntax(StackLocError):
    """Raised when a locator, range or revision string does not match the grammar."""

    def __init__(self, kind: str, text: str, reason: str | None = None) -> None:
        message = f"invalid {kind} `{text}`"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, details={"kind": kind, "text": text, "reason": reason})
        self.kind = kind
        self.text = text


class UnknownPatch(StackLocError):
    """Raised when a named anchor is not present in the stack."""

    def __init__(self, name: str, *, similar: Sequence[str] = ()) -> None:
        message = f"patch `{name}` does not exist"
        if similar:
            message = f"{message}; did you mean {', '.join(f'`{item}`' for item in similar)}?"
        super().__init__(message, details={"name": name, "similar": list(similar)})
        self.name = name
        self.similar = tuple(similar)


class InvalidOffset(StackLocError):
    """Raised when offset arithmetic lands on a position with no patch identity."""

    def __init__(self, locator: str, reason: str) -> None:
        super().__init__(f"invalid offset for `{locator}`: {reason}", details={"locator": locator})
        self.locator = locator


class OutOfRangeIndex(StackLocError):
    """Raised when a resolved index falls outside of the stack."""

    def __init__(self, locator: str, index: int, total: int) -> None:
        super().__init__(
            f"`{locator}` resolves to index {index}, outside of a stack of {total} patch(es)",
            details={"locator": locator, "index": index, "total": total},
        )
        self.locator = locator
        self.index = index
        self.total = total


class ConstraintViolation(StackLocError):
    """Raised when a resolved patch is not in a group permitted by the constraint."""

    def __init__(self, patchname: str, group: str, allowed: Sequence[str]) -> None:
        expected = " or ".join(allowed) if allowed else "nothing"
        super().__init__(
            f"patch `{patchname}` is {group}, expected {expected}",
            details={"patchname": patchname, "group": group, "allowed": list(allowed)},
        )
        self.patchname = patchname
        self.group = group
        self.allowed = tuple(allowed)


class InvertedRange(StackLocError):
    """Raised when a range's begin patch comes after its end patch."""

    def __init__(self, begin: str, end: str) -> None:
        super().__init__(
            f"patch range `{begin}..{end}` is inverted: `{begin}` comes after `{end}`",
            details={"begin": begin, "end": end},
        )
        self.begin = begin
        self.end = end


class EmptyRange(StackLocError):
    """Raised when a range needs boundary patches but selects none."""

    def __init__(self, text: str) -> None:
        super().__init__(f"patch range `{text}` selects no patches", details={"range": text})
        self.text = text


class DuplicatePatch(StackLocError):
    """Raised when several ranges select the same patch more than once."""

    def __init__(self, patchname: str) -> None:
        super().__init__(f"patch `{patchname}` appears more than once", details={"patchname": patchname})
        self.patchname = patchname


class NonContiguousRange(StackLocError):
    """Raised when a selection required to be contiguous has gaps."""

    def __init__(self, before: str, after: str) -> None:
        super().__init__(
            f"patches `{before}` and `{after}` are not contiguous",
            details={"before": before, "after": after},
        )


class UnknownBranch(StackLocError):
    """Raised by branch resolvers when a branch or its stack cannot be found."""

    def __init__(self, branch: str | None, reason: str | None = None) -> None:
        label = branch if branch is not None else "<current>"
        message = f"branch `{label}` not found"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, details={"branch": branch})
        self.branch = branch


class UnknownCommit(StackLocError):
    """Raised by commit lookups when a revision does not name a commit."""

    def __init__(self, revision: str) -> None:
        super().__init__(f"revision `{revision}` not found", details={"revision": revision})
        self.revision = revision


class AmbiguousCommitPrefix(StackLocError):
    """Raised when a commit id prefix matches more than one commit."""

    def __init__(self, prefix: str, candidates: Sequence[str] = ()) -> None:
        super().__init__(
            f"commit id prefix `{prefix}` is ambiguous",
            details={"prefix": prefix, "candidates": list(candidates)},
        )
        self.prefix = prefix
        self.candidates = tuple(candidates)


__all__ = [
    "AmbiguousCommitPrefix",
    "ConstraintViolation",
    "DuplicatePatch",
    "EmptyRange",
    "InvalidOffset",
    "InvalidPatchName",
    "InvertedRange",
    "MalformedSyntax",
    "NonContiguousRange",
    "OutOfRangeIndex",
    "StackLocError",
    "UnknownBranch",
    "UnknownCommit",
    "UnknownPatch",
]
