"""Tool integrations backing the resolver with a real repository."""

from .vcs import GitError, GitRepository, GitRevisionEngine, GitStackReader

__all__ = [
    "GitError",
    "GitRepository",
    "GitRevisionEngine",
    "GitStackReader",
]
