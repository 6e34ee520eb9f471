from __future__ import annotations

import pytest

from stackloc.patch import MalformedSyntax, OffsetKind, PatchOffsetAtom, PatchOffsets
from stackloc.patch.offset import trailing_offsets_start


def test_offsets_parse_atoms_in_order() -> None:
    offsets = PatchOffsets.parse("~3+")

    assert list(offsets.atoms()) == [PatchOffsetAtom.tilde(3), PatchOffsetAtom.plus()]
    assert list(offsets.deltas()) == [-3, 1]
    assert offsets.net() == -2
    assert str(offsets) == "~3+"


def test_offsets_keep_their_spelling() -> None:
    assert str(PatchOffsets.parse("+1+1")) == "+1+1"
    assert PatchOffsets.parse("+1+1") != PatchOffsets.parse("+2")
    assert PatchOffsets.parse("+1+1").net() == PatchOffsets.parse("+2").net()


def test_offsets_from_atoms_and_concatenation() -> None:
    built = PatchOffsets.from_atoms([PatchOffsetAtom(OffsetKind.PLUS, 2), PatchOffsetAtom.tilde()])

    assert str(built) == "+2~"
    assert str(built + PatchOffsets("~4")) == "+2~~4"
    assert (built + PatchOffsets("~4")).net() == -3


def test_empty_offsets_are_falsy() -> None:
    offsets = PatchOffsets()

    assert not offsets
    assert offsets.is_empty()
    assert offsets.net() == 0
    assert list(offsets.atoms()) == []


def test_zero_count_atom_is_kept() -> None:
    offsets = PatchOffsets.parse("+0")

    assert list(offsets.atoms()) == [PatchOffsetAtom.plus(0)]
    assert offsets.net() == 0


@pytest.mark.parametrize("text", ["+x", "1", "~-1", "+ 1", "~\u0661"])
def test_offsets_reject_malformed_text(text: str) -> None:
    with pytest.raises(MalformedSyntax):
        PatchOffsets.parse(text)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("p0+1~", 2),
        ("p0", 2),
        ("+1", 0),
        ("a+b+1", 3),
        ("", 0),
    ],
)
def test_trailing_offsets_start(text: str, expected: int) -> None:
    assert trailing_offsets_start(text) == expected
