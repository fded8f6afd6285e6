"""
Utility modules for the DArTseq population genetics pipeline.

This package provides shared utilities for:
- Configuration management (config.py)
- Error types (exceptions.py)
- File handling (file_utils.py)
- Genotype decoding and per-locus summaries (genetics_utils.py)
"""

from .config import (
    RESULTS_DIR,
    LOGS_DIR,
    AnalysisConfig,
    get_tool_path,
    setup_logging,
)
from .exceptions import (
    DartseqError,
    EmptyInputError,
    InsufficientDataError,
    MalformedInputError,
    MissingFileError,
)
from .file_utils import (
    create_results_structure,
    ensure_dir,
)

__all__ = [
    "RESULTS_DIR",
    "LOGS_DIR",
    "AnalysisConfig",
    "get_tool_path",
    "setup_logging",
    "DartseqError",
    "EmptyInputError",
    "InsufficientDataError",
    "MalformedInputError",
    "MissingFileError",
    "create_results_structure",
    "ensure_dir",
]
