"""Stack snapshots consumed by the locator resolver."""

from .snapshot import PatchMetadata, StackMetadata, StackSnapshot, SUPPORTED_STACK_VERSION

__all__ = ["PatchMetadata", "StackMetadata", "StackSnapshot", "SUPPORTED_STACK_VERSION"]
