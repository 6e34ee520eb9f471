"""CLI commands for locating patches, patch ranges and revisions in a stack."""

from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import typer
import yaml

from .patch import (
    LocationConstraint,
    LocationGroup,
    RangeConstraint,
    StackLocError,
    StGitRevision,
    parse_locator,
    parse_range,
    parse_revision_spec,
    resolve_locator,
    resolve_range_revision_spec,
    resolve_ranges,
    resolve_ranges_contiguous,
)
from .stack.snapshot import StackSnapshot
from .tools.vcs import GitError, GitRepository, GitRevisionEngine, GitStackReader

APP_HELP = "Resolve patch locators, ranges and revisions against a patch stack."
DEFAULT_CONFIG_NAME = ".stackloc.yaml"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

DEFAULT_CONFIG_TEMPLATE: Dict[str, Any] = {
    "resolve": {
        "constraint": LocationConstraint.ALL.value,
        "range_constraint": RangeConstraint.ALL.value,
    },
    "logging": {
        "level": "warning",
    },
}

_GROUP_MARKERS = {
    LocationGroup.APPLIED: "+",
    LocationGroup.UNAPPLIED: "-",
    LocationGroup.HIDDEN: "!",
}

LOGGER = logging.getLogger(__name__)

app = typer.Typer(help=APP_HELP, no_args_is_help=True)


@dataclass(slots=True)
class CliContext:
    """State shared by every command of one invocation."""

    repo_path: Path
    config: Dict[str, Any] = field(default_factory=dict)
    _repo: Optional[GitRepository] = None
    _reader: Optional[GitStackReader] = None

    @property
    def repo(self) -> GitRepository:
        if self._repo is None:
            self._repo = GitRepository.discover(self.repo_path)
        return self._repo

    @property
    def reader(self) -> GitStackReader:
        if self._reader is None:
            self._reader = GitStackReader(self.repo)
        return self._reader

    def snapshot(self, branch: Optional[str]) -> StackSnapshot:
        return self.reader(branch)


def _copy_config_template() -> Dict[str, Any]:
    """Return a deep copy of the default configuration template."""
    return copy.deepcopy(DEFAULT_CONFIG_TEMPLATE)


def _config_root(repo_path: Path) -> Path:
    """Return the repository root for ``repo_path``, or ``repo_path`` itself outside a repository."""
    try:
        return GitRepository.discover(repo_path).root
    except GitError:
        return repo_path


def load_config(config_path: Optional[Path], repo_path: Path) -> Dict[str, Any]:
    """Load YAML configuration and merge it over the defaults.

    Without an explicit path, ``.stackloc.yaml`` at the root of the repository
    containing ``repo_path`` is used when present.
    """
    config = _copy_config_template()
    path = config_path if config_path is not None else _config_root(repo_path) / DEFAULT_CONFIG_NAME
    if not path.exists():
        if config_path is not None:
            raise typer.BadParameter(f"Config file not found: {config_path}")
        return config

    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        typer.echo(f"Failed to parse config: {error}", err=True)
        raise typer.Exit(code=1) from error

    if not isinstance(data, dict):
        typer.echo("Configuration must be a mapping at the top level.", err=True)
        raise typer.Exit(code=1)

    for section, values in data.items():
        if isinstance(values, dict) and isinstance(config.get(section), dict):
            config[section].update(values)
        else:
            config[section] = values
    return config


def _configure_logging(config: Dict[str, Any], verbose: bool) -> None:
    level_name = "debug" if verbose else str((config.get("logging") or {}).get("level", "warning"))
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        typer.echo(f"Unknown log level '{level_name}'; using WARNING.", err=True)
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("stackloc").setLevel(level)


def _configured_constraint(config: Dict[str, Any], key: str, enum_type: Any) -> Any:
    value = (config.get("resolve") or {}).get(key)
    try:
        return enum_type(str(value))
    except ValueError as error:
        typer.echo(f"Invalid resolve.{key} '{value}' in configuration.", err=True)
        raise typer.Exit(code=1) from error


@contextmanager
def _reporting_errors() -> Iterator[None]:
    """Turn resolution errors into a one-line message and exit status 1."""
    try:
        yield
    except StackLocError as error:
        LOGGER.debug("Resolution failed with %s: %s", type(error).__name__, error.details)
        typer.echo(f"error: {error}", err=True)
        raise typer.Exit(code=1) from error


def _render_revision(revision: StGitRevision) -> str:
    label = revision.patchname if revision.patchname is not None else "-"
    return f"{revision.commit.id} {label}"


@app.callback()
def main(
    ctx: typer.Context,
    repo: Path = typer.Option(
        Path("."),
        "--repo",
        "-C",
        help="Run as if started in this directory.",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help=f"Path to the configuration file (defaults to {DEFAULT_CONFIG_NAME} in the repository).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging.",
    ),
) -> None:
    """Resolve patch locators, ranges and revisions against a patch stack."""
    config_data = load_config(config, repo)
    _configure_logging(config_data, verbose)
    ctx.obj = CliContext(repo_path=repo, config=config_data)


@app.command()
def locate(
    ctx: typer.Context,
    locator: str = typer.Argument(..., help="Patch locator, e.g. `p1`, `@~2`, `^1` or `{base}+1`."),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Branch whose stack is used."),
    constraint: Optional[LocationConstraint] = typer.Option(
        None,
        "--constraint",
        help="Stack groups the patch may belong to.",
    ),
) -> None:
    """Print the name of the patch LOCATOR points at."""
    state: CliContext = ctx.obj
    chosen = constraint or _configured_constraint(state.config, "constraint", LocationConstraint)
    with _reporting_errors():
        patch_locator = parse_locator(locator)
        name = resolve_locator(patch_locator, state.snapshot(branch), chosen)
    typer.echo(name)


@app.command(name="range")
def range_(
    ctx: typer.Context,
    ranges: List[str] = typer.Argument(..., help="Patch ranges such as `p1..p3`, `p2..` or single locators."),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Branch whose stack is used."),
    constraint: Optional[RangeConstraint] = typer.Option(
        None,
        "--constraint",
        help="Stack groups range members may belong to and where open ranges stop.",
    ),
    contiguous: bool = typer.Option(
        False,
        "--contiguous",
        help="Require the selected patches to form one unbroken run.",
    ),
) -> None:
    """Print the patches selected by one or more RANGES, one per line."""
    state: CliContext = ctx.obj
    chosen = constraint or _configured_constraint(state.config, "range_constraint", RangeConstraint)
    with _reporting_errors():
        parsed = [parse_range(item) for item in ranges]
        snapshot = state.snapshot(branch)
        if contiguous:
            names = resolve_ranges_contiguous(parsed, snapshot, chosen)
        else:
            names = resolve_ranges(parsed, snapshot, chosen)
    for name in names:
        typer.echo(name)


@app.command()
def rev(
    ctx: typer.Context,
    specs: List[str] = typer.Argument(..., help="Revision specs, e.g. `p1`, `{base}~^2`, `main:@`, `p1..p3`."),
    constraint: Optional[RangeConstraint] = typer.Option(
        None,
        "--constraint",
        help="Constraint applied to patch ranges.",
    ),
) -> None:
    """Print `<commit> <patch>` for each revision (`-` when not a patch)."""
    state: CliContext = ctx.obj
    chosen = constraint or _configured_constraint(state.config, "range_constraint", RangeConstraint)
    with _reporting_errors():
        parsed = [parse_revision_spec(item) for item in specs]
        engine = GitRevisionEngine(state.repo)
        for spec in parsed:
            boundary = resolve_range_revision_spec(spec, None, state.reader, engine, chosen)
            if boundary.is_single:
                typer.echo(_render_revision(boundary.first))
            else:
                first, last = boundary.bounds
                typer.echo(_render_revision(first))
                typer.echo(_render_revision(last))


@app.command()
def stack(
    ctx: typer.Context,
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Branch whose stack is shown."),
) -> None:
    """Show the stack with absolute indices: `+` applied, `-` unapplied, `!` hidden."""
    state: CliContext = ctx.obj
    with _reporting_errors():
        snapshot = state.snapshot(branch)
    typer.echo(f"base: {snapshot.base}")
    for index, name in enumerate(snapshot.all_patches):
        marker = _GROUP_MARKERS[snapshot.group_at(index)]
        if index == snapshot.top_index:
            marker = ">"
        typer.echo(f"{index:>3} {marker} {name}")


if __name__ == "__main__":
    app()
