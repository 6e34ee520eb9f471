from __future__ import annotations

import pytest

from stackloc.patch import (
    AmbiguousCommitPrefix,
    ConstraintViolation,
    InvalidOffset,
    LocationConstraint,
    MalformedSyntax,
    OutOfRangeIndex,
    PatchId,
    PatchIdKind,
    PatchLocator,
    PatchOffsets,
    UnknownPatch,
    disambiguate,
    parse_locator,
    resolve_locator,
    resolve_position,
)


def _resolve(text: str, snapshot, constraint: LocationConstraint = LocationConstraint.ALL) -> str:
    return resolve_locator(parse_locator(text), snapshot, constraint)


@pytest.mark.parametrize(
    ("text", "kind", "offsets"),
    [
        ("p1", PatchIdKind.NAME, ""),
        ("p1~2", PatchIdKind.NAME, "~2"),
        ("@", PatchIdKind.TOP, ""),
        ("@~1+", PatchIdKind.TOP, "~1+"),
        ("{base}+1", PatchIdKind.BASE, "+1"),
        ("^", PatchIdKind.BELOW_LAST, ""),
        ("^-2", PatchIdKind.BELOW_LAST, ""),
        ("~3", PatchIdKind.BELOW_TOP, "~3"),
        ("+", PatchIdKind.BELOW_TOP, "+"),
        ("@foo", PatchIdKind.NAME, ""),
    ],
)
def test_parse_locator_anchors(text: str, kind: PatchIdKind, offsets: str) -> None:
    locator = parse_locator(text)

    assert locator.id.kind is kind
    assert str(locator.offsets) == offsets
    assert str(locator) == text


def test_parse_locator_keeps_plus_in_name_candidates() -> None:
    locator = parse_locator("p0+1")

    assert locator.id == PatchId.named("p0+1")
    assert not locator.offsets


def test_parse_below_last_counts() -> None:
    assert parse_locator("^3").id == PatchId.below_last(3)
    assert parse_locator("^-3").id == PatchId.below_last(-3)
    assert parse_locator("^").id.count is None


@pytest.mark.parametrize("text", ["", "p1:", "p1~x", "^x", ".hidden", "a..b", "p 1", "@{1}"])
def test_parse_locator_rejects_malformed_text(text: str) -> None:
    with pytest.raises(MalformedSyntax):
        parse_locator(text)


def test_below_top_rejects_negative_index() -> None:
    with pytest.raises(ValueError):
        PatchId.below_top(-1)


def test_names_resolve_to_themselves(snapshot) -> None:
    for name in snapshot.all_patches:
        assert _resolve(name, snapshot) == name


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("@", "p2"),
        ("@~1", "p1"),
        ("@~", "p1"),
        ("@+", "p3"),
        ("~", "p1"),
        ("~2", "p0"),
        ("+", "p3"),
        ("+3", "h0"),
        ("p1+1", "p2"),
        ("p1~1", "p0"),
        ("p0+2~1", "p1"),
        ("{base}+1", "p0"),
        ("{base}+2~1", "p0"),
        ("^", "p4"),
        ("^1", "p3"),
        ("^0", "p4"),
        ("^-1", "h0"),
        ("^-2", "h1"),
        ("^~1", "p3"),
    ],
)
def test_relative_locators(snapshot, text: str, expected: str) -> None:
    assert _resolve(text, snapshot) == expected


def test_base_requires_positive_net_offset(snapshot) -> None:
    for text in ("{base}", "{base}~1", "{base}+1~1"):
        with pytest.raises(InvalidOffset):
            _resolve(text, snapshot)


def test_locators_landing_on_the_base_are_rejected(snapshot) -> None:
    with pytest.raises(InvalidOffset):
        _resolve("p0~1", snapshot)
    with pytest.raises(InvalidOffset):
        _resolve("^5", snapshot)


@pytest.mark.parametrize("text", ["p0~2", "{base}+8", "^-3", "^6", "h1+", "@+5", "9"])
def test_out_of_range_positions(snapshot, text: str) -> None:
    with pytest.raises(OutOfRangeIndex) as excinfo:
        _resolve(text, snapshot)

    assert excinfo.value.total == snapshot.total


def test_offset_steps_may_not_leave_the_stack(snapshot) -> None:
    # The net offset is zero but the first step is past the last patch.
    with pytest.raises(OutOfRangeIndex):
        _resolve("h1+1~1", snapshot)


def test_top_with_nothing_applied(snapshot_factory) -> None:
    snapshot = snapshot_factory([], ["u0", "u1"])

    assert resolve_position(parse_locator("@"), snapshot) == -1
    assert _resolve("@+1", snapshot) == "u0"
    assert _resolve("+2", snapshot) == "u1"
    with pytest.raises(InvalidOffset):
        _resolve("@", snapshot)
    with pytest.raises(OutOfRangeIndex):
        _resolve("@~1", snapshot)


def test_last_visible_with_only_hidden_patches(snapshot_factory) -> None:
    snapshot = snapshot_factory([], [], ["h0"])

    assert _resolve("^-1", snapshot) == "h0"
    with pytest.raises(InvalidOffset):
        _resolve("^", snapshot)


def test_constraint_violation_names_allowed_groups(snapshot) -> None:
    with pytest.raises(ConstraintViolation) as excinfo:
        _resolve("h0", snapshot, LocationConstraint.APPLIED)

    assert excinfo.value.patchname == "h0"
    assert excinfo.value.group == "hidden"
    assert excinfo.value.allowed == ("applied",)
    assert "expected applied" in str(excinfo.value)


@pytest.mark.parametrize(
    ("constraint", "allowed", "rejected"),
    [
        (LocationConstraint.VISIBLE, ["p0", "p3"], ["h0"]),
        (LocationConstraint.APPLIED, ["p2"], ["p3", "h1"]),
        (LocationConstraint.UNAPPLIED, ["p4"], ["p0", "h0"]),
        (LocationConstraint.HIDDEN, ["h1"], ["p2", "p4"]),
        (LocationConstraint.ALL, ["p0", "p4", "h1"], []),
    ],
)
def test_location_constraints(snapshot, constraint, allowed, rejected) -> None:
    for name in allowed:
        assert _resolve(name, snapshot, constraint) == name
    for name in rejected:
        with pytest.raises(ConstraintViolation):
            _resolve(name, snapshot, constraint)


def test_constraint_applies_to_the_final_position_only(snapshot) -> None:
    assert _resolve("h0~3", snapshot, LocationConstraint.APPLIED) == "p2"


def test_existing_patch_named_like_an_index_wins(snapshot_factory) -> None:
    snapshot = snapshot_factory(["a", "b", "c"], ["d", "e", "f"], ["5"])

    assert _resolve("5", snapshot) == "5"
    assert resolve_position(parse_locator("5"), snapshot) == 6
    assert _resolve("4", snapshot) == "e"


def test_digits_are_absolute_indexes(snapshot) -> None:
    assert _resolve("0", snapshot) == "p0"
    assert _resolve("5", snapshot) == "h0"
    assert _resolve("5+1", snapshot) == "h1"
    assert _resolve("3~1", snapshot) == "p2"


def test_name_with_trailing_offsets_falls_back_to_stem(snapshot) -> None:
    located = disambiguate(parse_locator("p0+1"), snapshot)

    assert located == PatchLocator(PatchId.named("p0"), PatchOffsets("+1"))
    assert _resolve("p0+1", snapshot) == "p1"
    assert _resolve("p0+", snapshot) == "p1"


def test_existing_name_with_plus_is_not_split(snapshot_factory) -> None:
    snapshot = snapshot_factory(["p0", "p0+1", "p1"])

    assert _resolve("p0+1", snapshot) == "p0+1"
    assert _resolve("p0+1~1", snapshot) == "p0"


def test_disambiguate_leaves_special_anchors_alone(snapshot) -> None:
    for text in ("@", "{base}+1", "^2", "~1"):
        locator = parse_locator(text)
        assert disambiguate(locator, snapshot) is locator


def _commit_snapshot(snapshot_factory):
    commits = {
        "p0": "aaaa" + "0" * 36,
        "p1": "abcd1" + "1" * 35,
        "p2": "abcd2" + "2" * 35,
    }
    return snapshot_factory(["p0", "p1"], ["p2"], commits=commits)


def test_commit_prefix_selects_patch(snapshot_factory) -> None:
    snapshot = _commit_snapshot(snapshot_factory)

    assert _resolve("abcd1", snapshot) == "p1"
    assert _resolve("ABCD2", snapshot) == "p2"
    assert _resolve("aaaa+1", snapshot) == "p1"
    assert _resolve("abcd2~2", snapshot) == "p0"


def test_ambiguous_commit_prefix(snapshot_factory) -> None:
    snapshot = _commit_snapshot(snapshot_factory)

    with pytest.raises(AmbiguousCommitPrefix) as excinfo:
        _resolve("abcd", snapshot)

    assert set(excinfo.value.candidates) == {"p1", "p2"}


def test_short_or_unmatched_prefix_is_unknown(snapshot_factory) -> None:
    snapshot = _commit_snapshot(snapshot_factory)

    for text in ("abc", "beef"):
        with pytest.raises(UnknownPatch):
            _resolve(text, snapshot)


def test_unknown_patch_suggests_similar_names(snapshot_factory) -> None:
    snapshot = snapshot_factory(["first-patch", "second-patch"])

    with pytest.raises(UnknownPatch) as excinfo:
        _resolve("first-pach", snapshot)

    assert excinfo.value.name == "first-pach"
    assert "first-patch" in excinfo.value.similar
    assert "did you mean" in str(excinfo.value)


def test_locator_resolve_name_method(snapshot) -> None:
    locator = PatchLocator.parse("@~1")

    assert locator.resolve_name(snapshot) == "p1"
    assert locator.resolve_name(snapshot, LocationConstraint.APPLIED) == "p1"
