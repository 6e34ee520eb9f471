from __future__ import annotations

import json
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Sequence

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from stackloc.stack.snapshot import StackSnapshot  # noqa: E402

BASE_ID = "b" * 40


def fake_commit_id(name: str) -> str:
    """Deterministic 40-hex commit id for a patch name used in unit tests."""

    digits = "".join(f"{ord(char):02x}" for char in name)
    return (digits + "0" * 40)[:40]


def make_snapshot(
    applied: Sequence[str] = (),
    unapplied: Sequence[str] = (),
    hidden: Sequence[str] = (),
    *,
    commits: Dict[str, str] | None = None,
) -> StackSnapshot:
    names = [*applied, *unapplied, *hidden]
    patch_commits = commits if commits is not None else {name: fake_commit_id(name) for name in names}
    top = patch_commits[applied[-1]] if applied else BASE_ID
    return StackSnapshot(
        applied=tuple(applied),
        unapplied=tuple(unapplied),
        hidden=tuple(hidden),
        base=BASE_ID,
        top=top,
        patch_commits=patch_commits,
    )


@pytest.fixture()
def snapshot() -> StackSnapshot:
    """Stack with three applied, two unapplied and two hidden patches."""

    return make_snapshot(["p0", "p1", "p2"], ["p3", "p4"], ["h0", "h1"])


@dataclass(slots=True)
class StackRepo:
    """Fixture payload: a git repository carrying stacked-git metadata."""

    root: Path
    base: str
    commits: Dict[str, str] = field(default_factory=dict)

    def git(self, *args: str, input_text: str | None = None) -> str:
        result = subprocess.run(
            ["git", *args],
            cwd=self.root,
            input=input_text,
            check=True,
            capture_output=True,
            text=True,
        )
        return result.stdout.strip()

    def commit_file(self, name: str) -> str:
        (self.root / f"{name}.txt").write_text(f"{name}\n", encoding="utf-8")
        self.git("add", f"{name}.txt")
        self.git("commit", "-q", "-m", name)
        return self.git("rev-parse", "HEAD")

    def write_stack(
        self,
        branch: str,
        applied: Iterable[str],
        unapplied: Iterable[str] = (),
        hidden: Iterable[str] = (),
        *,
        version: int = 5,
    ) -> None:
        applied = list(applied)
        unapplied = list(unapplied)
        hidden = list(hidden)
        head = self.git("rev-parse", f"refs/heads/{branch}")
        document = {
            "version": version,
            "prev": None,
            "head": head,
            "applied": applied,
            "unapplied": unapplied,
            "hidden": hidden,
            "patches": {name: {"oid": self.commits[name]} for name in [*applied, *unapplied, *hidden]},
        }
        blob = self.git("hash-object", "-w", "--stdin", input_text=json.dumps(document))
        tree = self.git("mktree", input_text=f"100644 blob {blob}\tstack.json\n")
        commit = self.git("commit-tree", tree, "-m", "stack metadata")
        self.git("update-ref", f"refs/stacks/{branch}", commit)


@pytest.fixture()
def stack_repo(tmp_path: Path) -> StackRepo:
    """Repository on `main` with patches p0-p2 applied, p3 unapplied and h0 hidden."""

    root = tmp_path / "stack-repo"
    root.mkdir()
    subprocess.run(["git", "init", "-q"], cwd=root, check=True, capture_output=True)
    repo = StackRepo(root=root, base="")
    repo.git("symbolic-ref", "HEAD", "refs/heads/main")
    repo.git("config", "user.email", "stack@example.com")
    repo.git("config", "user.name", "Stack Tester")
    repo.git("config", "commit.gpgsign", "false")

    repo.base = repo.commit_file("base")
    for name in ("p0", "p1", "p2", "p3", "h0"):
        repo.commits[name] = repo.commit_file(name)
    repo.git("reset", "-q", "--hard", repo.commits["p2"])
    repo.write_stack("main", ["p0", "p1", "p2"], ["p3"], ["h0"])
    return repo


@pytest.fixture()
def snapshot_factory():
    return make_snapshot
