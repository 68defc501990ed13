"""Failures reported by rename_identifiers.

Every failure names the package location or file it belongs to, so that a
run over many packages can collect them all and print them together.
"""

from pathlib import Path
from typing import Optional, Union


class RenameError(Exception):
    """Base class for failures isolated to one package or one file."""

    def __init__(self, path: Union[str, Path], message: str):
        super().__init__(f"{path}: {message}")
        self.path = str(path)
        self.message = message


class PackageError(RenameError):
    """A package location could not be found or read."""


class ParseFailure(RenameError):
    """A file is not valid Python syntax."""

    def __init__(
        self,
        path: Union[str, Path],
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ):
        super().__init__(path, message)
        self.line = line
        self.column = column
        if line is not None:
            # path:line:column: message, like compilers print it
            self.args = (f"{path}:{line}:{column}: {message}",)


class WriteFailure(RenameError):
    """A rewritten file could not be created or fully written."""
