#!/usr/bin/env -S uv run --script

# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "anyio",
#     "click",
#     "libcst",
#     "rich",
# ]
# ///

import keyword
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Set, Tuple

import anyio
import click
import libcst as cst
from rich.console import Console

from lint_name import exact_match, lint_name
from python_packages import expand_patterns, load_package
from rename_errors import PackageError, ParseFailure, RenameError, WriteFailure

# Progress output for --verbose goes to stderr, results go to stdout
console = Console(stderr=True)


@dataclass(frozen=True)
class RenameConfig:
    auto: bool = False
    from_name: str = ""
    to_name: str = ""
    dry_run: bool = False
    verbose: bool = False

    def validate(self) -> None:
        """Raise ValueError unless exactly one of --auto or --from/--to is used."""
        if self.auto and (self.from_name or self.to_name):
            raise ValueError("--auto cannot be combined with --from or --to")
        if not self.auto and not (self.from_name and self.to_name):
            raise ValueError("either --auto or both --from and --to are required")
        if not self.auto and (
            not self.to_name.isidentifier() or keyword.iskeyword(self.to_name)
        ):
            raise ValueError(f"--to {self.to_name!r} is not a valid Python identifier")

    def transform(self) -> Callable[[str], str]:
        if self.auto:
            return lint_name
        return exact_match(self.from_name, self.to_name)


class ChangeRecorder:
    """
    Collects what a run changed: the distinct (old, new) identifier pairs
    and the files that were (or, with --dry-run, would be) rewritten.

    Safe to use from any number of concurrent workers.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._pairs: Set[Tuple[str, str]] = set()
        self._files: Set[Path] = set()

    def add(self, old: str, new: str) -> None:
        with self._lock:
            self._pairs.add((old, new))

    def add_file(self, path: Path) -> None:
        with self._lock:
            self._files.add(path)

    def pairs(self) -> List[Tuple[str, str]]:
        with self._lock:
            return sorted(self._pairs)

    def files(self) -> List[Path]:
        with self._lock:
            return sorted(self._files)

    def __contains__(self, pair) -> bool:
        with self._lock:
            return pair in self._pairs

    def __len__(self) -> int:
        with self._lock:
            return len(self._pairs)


class IdentifierRenamer(cst.CSTTransformer):
    """Apply a name transform to every identifier (libcst Name node) in a tree."""

    def __init__(
        self, transform: Callable[[str], str], changes: Optional[ChangeRecorder] = None
    ):
        super().__init__()
        self.transform = transform
        self.changes = changes
        self.changed = False

    def leave_Name(self, original_node: cst.Name, updated_node: cst.Name) -> cst.Name:
        old = updated_node.value
        new = self.transform(old)
        if new == old:
            return updated_node

        self.changed = True
        if self.changes is not None:
            self.changes.add(old, new)
        return updated_node.with_changes(value=new)


class SourceFile:
    def __init__(self, path: Path, module: cst.Module):
        self.path = Path(path)
        self.module = module
        self.modified = False

    @classmethod
    def parse(cls, path: Path, data: bytes) -> "SourceFile":
        """Parse the raw bytes of a file, keeping comments and formatting"""
        try:
            module = cst.parse_module(data)
        except cst.ParserSyntaxError as e:
            raise ParseFailure(path, e.message, e.editor_line, e.editor_column) from e
        except UnicodeDecodeError as e:
            raise ParseFailure(path, f"cannot decode source: {e}") from e
        except (SyntaxError, LookupError, ValueError, RecursionError) as e:
            # Unknown coding cookies, null bytes, nesting too deep
            raise ParseFailure(path, str(e) or type(e).__name__) from e
        return cls(path, module)

    def rename(
        self, transform: Callable[[str], str], changes: Optional[ChangeRecorder] = None
    ) -> bool:
        """Rename identifiers in place, returning True if any name changed"""
        renamer = IdentifierRenamer(transform, changes)
        self.module = self.module.visit(renamer)
        if renamer.changed:
            self.modified = True
        return renamer.changed

    @property
    def data(self) -> bytes:
        return self.module.bytes

    async def save(self) -> bool:
        """
        Write the file back if it was modified.

        The file is truncated before the new content is written, so a failure
        halfway through leaves it partially written.
        """
        if not self.modified:
            return False
        try:
            async with await anyio.open_file(self.path, "wb") as f:
                await f.write(self.data)
        except OSError as e:
            raise WriteFailure(self.path, e.strerror or str(e)) from e
        return True


async def _rename_file(
    path: Path, config: RenameConfig, changes: ChangeRecorder
) -> None:
    try:
        data = await anyio.Path(path).read_bytes()
    except OSError as e:
        raise RenameError(path, f"cannot read file: {e.strerror or e}") from e

    source = SourceFile.parse(path, data)
    if not source.rename(config.transform(), changes if config.auto else None):
        return

    if config.dry_run:
        changes.add_file(source.path)
        click.echo(f"Would rewrite: {path}")
        return

    await source.save()
    changes.add_file(source.path)
    if config.verbose:
        console.print(f"[green]Rewrote[/green] {path}")


async def rename_file(
    path: Path, config: RenameConfig, changes: ChangeRecorder
) -> Optional[RenameError]:
    """Rename identifiers in one file and return the failure, if any."""
    try:
        await _rename_file(path, config, changes)
    except RenameError as e:
        return e
    except Exception as e:
        # Anything else still belongs to this file alone
        return RenameError(path, f"unexpected error: {e!r}")
    return None


async def rename_package(
    location: str, config: RenameConfig, changes: ChangeRecorder
) -> List[RenameError]:
    """Rename identifiers in every file of a package, concurrently."""
    try:
        package = load_package(location)
    except PackageError as e:
        return [e]

    files = package.files()
    if config.verbose:
        console.print(
            f"[bold blue]{package.name}[/bold blue]: {len(files)} files in {package.directory}"
        )

    errors: List[RenameError] = []

    async def worker(path: Path) -> None:
        error = await rename_file(path, config, changes)
        if error is not None:
            errors.append(error)

    # Workers never raise, so one failing file does not cancel the others
    async with anyio.create_task_group() as tg:
        for path in files:
            tg.start_soon(worker, path)
    return errors


async def rename_all(
    locations: Sequence[str], config: RenameConfig, changes: ChangeRecorder
) -> List[RenameError]:
    """Process all packages concurrently and collect every failure."""
    errors: List[RenameError] = []

    async def worker(location: str) -> None:
        errors.extend(await rename_package(location, config, changes))

    async with anyio.create_task_group() as tg:
        for location in locations:
            tg.start_soon(worker, location)
    return errors


def print_changes(changes: ChangeRecorder) -> None:
    """Print the distinct identifier renames of an --auto run."""
    if not len(changes):
        return
    click.echo("Changed:")
    for old, new in changes.pairs():
        click.echo(f"\t{old} -> {new}")


@click.command()
@click.option("--from", "from_name", default="", help="The current name")
@click.option("--to", "to_name", default="", help="The new name")
@click.option(
    "--auto",
    is_flag=True,
    help="Automatically fix any identifier that 'go lint' naming rules would flag",
)
@click.option(
    "--dry-run",
    "-n",
    is_flag=True,
    help="Preview changes without rewriting any files",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Show every package processed and every file rewritten",
)
@click.argument("packages", nargs=-1)
@click.pass_context
def rename_identifiers(
    ctx: click.Context,
    from_name: str,
    to_name: str,
    auto: bool,
    dry_run: bool,
    verbose: bool,
    packages: Tuple[str, ...],
) -> None:
    """
    Rename identifiers in all Python files of PACKAGES at once.

    Only identifiers that exactly match --from are replaced; strings and
    comments are never touched. There is no check that the rename is safe,
    and only the packages named on the command line are scanned.

    With --auto, underscore_names and mis-cased initialisms are rewritten
    to camelCase with initialisms such as ID, URL and HTTP kept upper case.

    PACKAGES are directories, .py files or import names. "dir/..." matches
    every package below dir. With no PACKAGES the current directory is used.

    Examples:
        ./rename_identifiers.py --from old_name --to new_name src/...
        ./rename_identifiers.py --auto mypackage
    """
    config = RenameConfig(
        auto=auto,
        from_name=from_name,
        to_name=to_name,
        dry_run=dry_run,
        verbose=verbose,
    )
    try:
        config.validate()
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        click.echo(ctx.get_usage(), err=True)
        sys.exit(1)

    locations = expand_patterns(packages)
    changes = ChangeRecorder()
    errors = anyio.run(rename_all, locations, config, changes)

    for error in sorted(errors, key=str):
        click.echo(str(error), err=True)

    if config.auto:
        print_changes(changes)

    if dry_run:
        click.echo(
            f"\nDry run complete. {len(changes.files())} files would be rewritten."
        )
    elif verbose:
        console.print(f"Rewrote {len(changes.files())} files")

    if errors:
        sys.exit(1)


if __name__ == "__main__":
    rename_identifiers()
