#!/usr/bin/env python3
"""
File handling utilities for the DArTseq pipeline.

This module provides utilities for:
- Creating the results directory structure
- Reading individual metadata (population) files
- Reading identifier substitution files
- Listing generated files and formatting file sizes

Example:
    >>> from dartseq_popgen.utils.file_utils import ensure_dir
    >>> ensure_dir("03_results/tables")
"""

import logging
from pathlib import Path
from typing import Dict, List, Union

import pandas as pd

from .config import RESULT_SUBDIRS
from .exceptions import MalformedInputError, MissingFileError


logger = logging.getLogger(__name__)


# ==============================================================================
# Directory Utilities
# ==============================================================================

def ensure_dir(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Path to the directory

    Returns:
        Path object for the directory
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def create_results_structure(results_dir: Union[str, Path]) -> Dict[str, Path]:
    """
    Create the results directory structure.

    Args:
        results_dir: Base results directory

    Returns:
        Dictionary mapping "results", "tables", "plots" and "reports" to paths
    """
    base = ensure_dir(results_dir)

    directories = {"results": base}
    for name, subdir in RESULT_SUBDIRS.items():
        directories[name] = ensure_dir(base / subdir)

    logger.info(f"Results directory structure created: {base}")
    return directories


def require_file(path: Union[str, Path], description: str = "Input file") -> Path:
    """
    Return ``path`` as a Path, raising MissingFileError if it is not a file.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise MissingFileError(file_path, description)
    return file_path


# ==============================================================================
# Metadata Files
# ==============================================================================

def read_population_file(pop_file: Union[str, Path]) -> Dict[str, str]:
    """
    Read an individual metadata file.

    Expected format: CSV with at least the columns ``id`` and ``pop``.

    Args:
        pop_file: Path to the metadata file

    Returns:
        Dictionary mapping individual IDs to population labels

    Raises:
        MissingFileError: If the file does not exist
        MalformedInputError: If the file cannot be parsed or the required
            columns are absent
    """
    pop_path = require_file(pop_file, "Individual metadata file")
    try:
        meta = pd.read_csv(pop_path, dtype=str)
    except pd.errors.EmptyDataError:
        raise MalformedInputError(f"Individual metadata file is empty: {pop_path}") from None
    except pd.errors.ParserError as e:
        raise MalformedInputError(
            f"Could not parse individual metadata file {pop_path}: {e}"
        ) from None

    missing = {"id", "pop"} - set(meta.columns)
    if missing:
        raise MalformedInputError(
            f"Individual metadata file {pop_path} lacks column(s): {', '.join(sorted(missing))}"
        )

    meta = meta.dropna(subset=["id", "pop"])
    return dict(zip(meta["id"].str.strip(), meta["pop"].str.strip()))


def read_substitution_file(sub_file: Union[str, Path]) -> Dict[str, str]:
    """
    Read an identifier substitution file.

    Expected format: TAB separated, columns: OLD NEW. Lines starting with #
    are treated as comments. An empty NEW column deletes OLD. File order is
    preserved.

    Args:
        sub_file: Path to substitution file

    Returns:
        Ordered dictionary mapping substrings to their replacement
    """
    sub_path = require_file(sub_file, "Substitution file")
    substitutions: Dict[str, str] = {}
    with open(sub_path, "r") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.rstrip("\n")
            if not line.strip() or line.startswith("#"):
                continue
            parts = line.split("\t")
            if len(parts) > 2 or not parts[0]:
                raise MalformedInputError(
                    f"{sub_path}:{line_no}: expected 'OLD<TAB>NEW', got {line!r}"
                )
            substitutions[parts[0]] = parts[1] if len(parts) == 2 else ""
    return substitutions


def parse_substitution_args(pairs: List[str]) -> Dict[str, str]:
    """
    Parse ``OLD=NEW`` command line pairs into an ordered dictionary.

    Raises:
        ValueError: If a pair has no ``=`` or an empty OLD part
    """
    substitutions: Dict[str, str] = {}
    for pair in pairs:
        old, sep, new = pair.partition("=")
        if not sep or not old:
            raise ValueError(f"Invalid substitution {pair!r}, expected OLD=NEW")
        substitutions[old] = new
    return substitutions


# ==============================================================================
# File Size Utilities
# ==============================================================================

def format_size(size_bytes: float) -> str:
    """
    Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Human-readable size string (e.g., "1.23 MB")
    """
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_bytes < 1024.0:
            return f"{size_bytes:.2f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.2f} PB"


def list_files(directory: Union[str, Path], suffix: str = "") -> List[Path]:
    """List regular files in ``directory`` ending with ``suffix``, sorted by name."""
    dir_path = Path(directory)
    if not dir_path.is_dir():
        return []
    return sorted(p for p in dir_path.iterdir() if p.is_file() and p.name.endswith(suffix))
