"""Relative offsets between patch locations.

On the command line offsets are concatenations of ``+[<n>]`` and ``~[<n>]``
atoms, e.g. ``~3+`` or ``+1+1``. A ``+`` moves towards the next patches in
stack order, a ``~`` towards the previous ones. An omitted ``<n>`` means one.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Pattern, Tuple

from .errors import MalformedSyntax

_ATOM_PATTERN: Pattern[str] = re.compile(r"([+~])([0-9]*)")


class OffsetKind(str, Enum):
    """Direction of a single offset atom."""

    PLUS = "+"
    TILDE = "~"


@dataclass(frozen=True, slots=True)
class PatchOffsetAtom:
    """An individual offset atom such as ``+``, ``~``, ``~3`` or ``+1``."""

    kind: OffsetKind
    count: int | None = None

    @classmethod
    def plus(cls, count: int | None = None) -> "PatchOffsetAtom":
        return cls(OffsetKind.PLUS, count)

    @classmethod
    def tilde(cls, count: int | None = None) -> "PatchOffsetAtom":
        return cls(OffsetKind.TILDE, count)

    @property
    def magnitude(self) -> int:
        return 1 if self.count is None else self.count

    @property
    def delta(self) -> int:
        """Signed index change: positive for ``+``, negative for ``~``."""

        return self.magnitude if self.kind is OffsetKind.PLUS else -self.magnitude

    def __str__(self) -> str:
        return f"{self.kind.value}{'' if self.count is None else self.count}"


def scan_offsets(text: str, start: int = 0) -> int:
    """Return the end position of the offset atoms found at ``text[start:]``."""

    position = start
    while position < len(text):
        match = _ATOM_PATTERN.match(text, position)
        if match is None:
            break
        position = match.end()
    return position


def trailing_offsets_start(text: str) -> int:
    """Return where the longest run of offset atoms ending ``text`` begins.

    ``p0+1~`` yields ``2``; a string without trailing offsets yields ``len(text)``.
    """

    best = len(text)
    for index, char in enumerate(text):
        if char in "+~" and scan_offsets(text, index) == len(text):
            best = index
            break
    return best


@dataclass(frozen=True, slots=True)
class PatchOffsets:
    """Ordered chain of offset atoms, kept in its exact textual spelling."""

    text: str = ""

    def __post_init__(self) -> None:
        end = scan_offsets(self.text)
        if end != len(self.text):
            raise MalformedSyntax("patch offsets", self.text, f"unexpected `{self.text[end:]}`")

    @classmethod
    def parse(cls, text: str) -> "PatchOffsets":
        """Parse ``text`` as an offset chain; trailing garbage is a syntax error."""

        return cls(text)

    @classmethod
    def from_atoms(cls, atoms: Tuple[PatchOffsetAtom, ...] | list[PatchOffsetAtom]) -> "PatchOffsets":
        return cls("".join(str(atom) for atom in atoms))

    def atoms(self) -> Iterator[PatchOffsetAtom]:
        for match in _ATOM_PATTERN.finditer(self.text):
            digits = match.group(2)
            yield PatchOffsetAtom(OffsetKind(match.group(1)), int(digits) if digits else None)

    def deltas(self) -> Iterator[int]:
        for atom in self.atoms():
            yield atom.delta

    def net(self) -> int:
        """Sum of all atom deltas."""

        return sum(self.deltas())

    def is_empty(self) -> bool:
        return not self.text

    def __add__(self, other: "PatchOffsets") -> "PatchOffsets":
        if not isinstance(other, PatchOffsets):
            return NotImplemented
        return PatchOffsets(self.text + other.text)

    def __bool__(self) -> bool:
        return bool(self.text)

    def __str__(self) -> str:
        return self.text


__all__ = [
    "OffsetKind",
    "PatchOffsetAtom",
    "PatchOffsets",
    "scan_offsets",
    "trailing_offsets_start",
]
