#!/usr/bin/env python3
"""clc.errors

Exceptions raised by the extraction pipeline.

Library code raises these; the CLI (clc.__main__) turns them into
SystemExit so command-line runs fail fast with a readable message.
"""

from __future__ import annotations

from typing import Iterable


class ClcError(ValueError):
    """Base class for every pipeline failure."""


class ConfigurationError(ClcError):
    """Dataset root missing or unset, or no vintage subfolders found."""


class InvalidVintageError(ClcError):
    """Requested vintage is not one of the available years."""


class DatasetFileError(ClcError):
    """Vintage folder has zero or several candidate files, or an unusable layer."""


class MissingColumnError(ClcError, KeyError):
    """Point table lacks one or more required columns."""

    def __init__(self, missing: Iterable[str], context: str = "points table"):
        self.missing = list(missing)
        super().__init__(f"{context} is missing required column(s): {self.missing}")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]
