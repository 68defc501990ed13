"""Resolve package patterns from the command line into Python packages."""

import importlib.util
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Set, Tuple

import click

from rename_errors import PackageError

# Directories that never hold packages of their own
SKIP_DIRS = {
    "__pycache__",
    "build",
    "dist",
    "node_modules",
    "site-packages",
    "venv",
}
GLOB_CHARS = set("*?[")


@dataclass(frozen=True)
class Package:
    name: str
    directory: Path
    source_files: Tuple[str, ...] = ()
    test_files: Tuple[str, ...] = ()
    external_test_files: Tuple[str, ...] = ()

    def files(self) -> List[Path]:
        """All files of the package: sources, then tests, then external tests."""
        names = [*self.source_files, *self.test_files, *self.external_test_files]
        return [self.directory / name for name in names]


def is_test_file(name: str) -> bool:
    return (
        name.startswith("test_") or name.endswith("_test.py") or name == "conftest.py"
    )


def is_import_name(location: str) -> bool:
    """Check if a location looks like a dotted import name (pkg.sub)"""
    return all(part.isidentifier() for part in location.split("."))


def _split_files(names: Sequence[str]) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    sources = tuple(n for n in names if not is_test_file(n))
    tests = tuple(n for n in names if is_test_file(n))
    return sources, tests


def _package_from_dir(name: str, directory: Path) -> Package:
    try:
        names = sorted(
            p.name for p in directory.iterdir() if p.is_file() and p.suffix == ".py"
        )
        # A tests/ directory that is not a package itself holds external tests
        tests_dir = directory / "tests"
        external = ()
        if tests_dir.is_dir() and not (tests_dir / "__init__.py").exists():
            external = tuple(
                sorted(
                    f"tests/{p.name}"
                    for p in tests_dir.iterdir()
                    if p.is_file() and p.suffix == ".py"
                )
            )
    except OSError as e:
        raise PackageError(name, f"cannot read directory: {e}") from e

    sources, tests = _split_files(names)
    if not (sources or tests or external):
        raise PackageError(name, f"no Python source files in {directory}")
    return Package(
        name=name,
        directory=directory.resolve(),
        source_files=sources,
        test_files=tests,
        external_test_files=external,
    )


def _package_from_file(name: str, path: Path) -> Package:
    if not path.is_file():
        raise PackageError(name, "cannot find file")
    sources, tests = _split_files([path.name])
    return Package(
        name=name,
        directory=path.parent.resolve(),
        source_files=sources,
        test_files=tests,
    )


def load_package(location: str) -> Package:
    """
    Resolve LOCATION to a package.

    A location is a directory, a single .py file, or a dotted import name
    that can be found on sys.path (e.g. "requests.adapters").
    """
    path = Path(location)
    if path.is_dir():
        return _package_from_dir(location, path)
    if path.suffix == ".py":
        return _package_from_file(location, path)
    if not is_import_name(location):
        raise PackageError(location, "cannot find package")

    try:
        spec = importlib.util.find_spec(location)
    except (ImportError, ValueError) as e:
        raise PackageError(location, f"cannot find package: {e}") from e
    if spec is None:
        raise PackageError(location, "cannot find package")

    if spec.submodule_search_locations:
        directory = Path(next(iter(spec.submodule_search_locations)))
        return _package_from_dir(location, directory)
    if spec.origin and spec.origin.endswith(".py"):
        return _package_from_file(location, Path(spec.origin))
    raise PackageError(location, "package has no Python source")


def _is_skipped(directory: Path, base: Path, found: Set[Path]) -> bool:
    parts = directory.relative_to(base).parts
    if any(part.startswith(".") or part in SKIP_DIRS for part in parts):
        return True
    # tests/ belongs to its parent package as external tests, if there is one
    return (
        directory.name == "tests"
        and directory.parent in found
        and not (directory / "__init__.py").exists()
    )


def _walk_packages(base: str) -> List[str]:
    """Find the directories at or below BASE holding .py files"""
    directory = Path(base)
    if not directory.is_dir() and is_import_name(base):
        try:
            directory = load_package(base).directory
        except PackageError:
            return []
    if not directory.is_dir():
        return []

    found = {f.parent for f in directory.rglob("*.py")}
    return [str(d) for d in sorted(found) if not _is_skipped(d, directory, found)]


def _glob_packages(pattern: str) -> List[str]:
    path = Path(pattern)
    if path.is_absolute():
        root = Path(path.anchor)
        relative = str(path.relative_to(path.anchor))
    else:
        root = Path()
        relative = pattern

    matches = []
    for match in sorted(root.glob(relative)):
        if match.name.startswith(".") or match.name in SKIP_DIRS:
            continue
        if match.is_dir() and any(match.glob("*.py")):
            matches.append(str(match))
        elif match.is_file() and match.suffix == ".py":
            matches.append(str(match))
    return matches


def expand_patterns(patterns: Sequence[str]) -> List[str]:
    """
    Expand command-line package patterns into package locations.

    "dir/..." matches dir and every package below it, glob characters match
    directories and .py files, anything else is passed through as is.
    With no patterns at all the current directory is used.
    """
    if not patterns:
        return ["."]

    locations: List[str] = []
    for pattern in patterns:
        if pattern == "..." or pattern.endswith("/..."):
            matches = _walk_packages(pattern[: -len("...")] or ".")
        elif pattern.endswith("..."):
            matches = _walk_packages(pattern[: -len("...")].rstrip("."))
        elif any(ch in GLOB_CHARS for ch in pattern):
            matches = _glob_packages(pattern)
        else:
            matches = [pattern]

        if not matches:
            click.echo(f'warning: "{pattern}" matched no packages', err=True)
        for match in matches:
            if match not in locations:
                locations.append(match)
    return locations
