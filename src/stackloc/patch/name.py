"""Validated patch names."""

from __future__ import annotations

from typing import Any

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

from .errors import InvalidPatchName

RESERVED_NAMES = frozenset({"@", "{base}"})
_FORBIDDEN_CHARS = frozenset("~^:?*[\\")


def _check_name(raw: str) -> str | None:
    """Return the first naming rule ``raw`` breaks, or ``None`` when it is valid."""

    if not raw:
        return "patch name may not be empty"
    if raw in RESERVED_NAMES:
        return f"`{raw}` is reserved"
    if "/" in raw:
        return "patch name may not contain '/'"
    for char in raw:
        if ord(char) < 0x20 or ord(char) == 0x7F:
            return "patch name may not contain control characters"
        if char.isspace():
            return "patch name may not contain whitespace"
        if char in _FORBIDDEN_CHARS:
            return f"patch name may not contain '{char}'"
    if ".." in raw:
        return "patch name may not contain '..'"
    if "@{" in raw:
        return "patch name may not contain '@{'"
    if raw.startswith("."):
        return "patch name may not begin with '.'"
    if raw.endswith("."):
        return "patch name may not end with '.'"
    if raw.endswith(".lock"):
        return "patch name may not end with '.lock'"
    return None


class PatchName(str):
    """A string that follows the patch naming rules.

    A valid patch name meets the rules of a single git reference name
    component, so it contains no '/', and it is neither of the reserved
    spellings ``@`` or ``{base}``.
    """

    __slots__ = ()

    def __new__(cls, raw: str) -> "PatchName":
        if isinstance(raw, PatchName):
            return raw
        if not isinstance(raw, str):
            raise TypeError(f"patch name must be a string, not {type(raw).__name__}")
        problem = _check_name(raw)
        if problem is not None:
            raise InvalidPatchName(raw, problem)
        return super().__new__(cls, raw)

    @classmethod
    def make(cls, raw: str) -> "PatchName":
        """Validate ``raw`` and return it as a :class:`PatchName`."""

        return cls(raw)

    @staticmethod
    def is_valid(raw: str) -> bool:
        return isinstance(raw, str) and _check_name(raw) is None

    def __repr__(self) -> str:
        return f"PatchName({str.__repr__(self)})"

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: GetCoreSchemaHandler) -> core_schema.CoreSchema:
        return core_schema.no_info_after_validator_function(
            cls.make,
            core_schema.str_schema(),
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )


__all__ = ["PatchName", "RESERVED_NAMES"]
