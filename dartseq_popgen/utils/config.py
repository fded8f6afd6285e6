#!/usr/bin/env python3
"""
Configuration settings for the DArTseq population genetics pipeline.

This module provides centralized configuration for:
- Directory paths (results, logs)
- External tool paths (pandoc, mail)
- Analysis parameters (RepAvg, call rate, population prefix, PCoA axes)
- Logging setup

Directory defaults are configurable via environment variables. They are only
used as command line defaults; pipeline components always receive explicit
paths.

Example:
    >>> from dartseq_popgen.utils.config import QC_DEFAULTS, get_tool_path
    >>> QC_DEFAULTS["callrate"]
    0.8
    >>> pandoc = get_tool_path("pandoc")
"""

import logging
import os
import shutil
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


# ==============================================================================
# Project Directory Structure
# ==============================================================================

def _get_project_root() -> Path:
    """Determine the project root directory."""
    env_root = os.environ.get("DARTSEQ_PROJECT_ROOT")
    if env_root:
        return Path(env_root).resolve()
    return Path.cwd().resolve()


PROJECT_ROOT: Path = _get_project_root()
"""Project root directory."""

RESULTS_DIR: Path = Path(os.environ.get("DARTSEQ_RESULTS_DIR", PROJECT_ROOT / "03_results"))
"""Analysis results directory."""

LOGS_DIR: Path = Path(os.environ.get("DARTSEQ_LOGS_DIR", PROJECT_ROOT / "logs"))
"""Log files directory."""

# Sub-directories created under a results directory
RESULT_SUBDIRS: Dict[str, str] = {
    "tables": "tables",
    "plots": "plots",
    "reports": "reports",
}


# ==============================================================================
# External Tool Paths
# ==============================================================================

TOOL_PATHS: Dict[str, Optional[str]] = {
    "pandoc": os.environ.get("PANDOC_PATH"),
    "mail": os.environ.get("MAIL_PATH"),
}


def get_tool_path(tool_name: str) -> Optional[Path]:
    """
    Get the path to an external tool.

    First checks environment variables, then checks if the tool is in PATH.

    Args:
        tool_name: Name of the tool ("pandoc" or "mail")

    Returns:
        Path to the tool executable, or None if not found

    Raises:
        ValueError: If tool_name is not a recognized tool
    """
    tool_name_lower = tool_name.lower()

    if tool_name_lower not in TOOL_PATHS:
        raise ValueError(
            f"Unknown tool: {tool_name}. "
            f"Known tools: {', '.join(TOOL_PATHS.keys())}"
        )

    env_path = TOOL_PATHS.get(tool_name_lower)
    if env_path:
        path = Path(env_path)
        if path.exists() and path.is_file():
            return path

    which_result = shutil.which(tool_name_lower)
    if which_result:
        return Path(which_result)

    return None


def check_tool_available(tool_name: str) -> bool:
    """Check if an external tool is available."""
    return get_tool_path(tool_name) is not None


def check_all_tools() -> Dict[str, bool]:
    """
    Check availability of all registered tools.

    Returns:
        Dictionary mapping tool names to availability status
    """
    return {tool: check_tool_available(tool) for tool in TOOL_PATHS.keys()}


# ==============================================================================
# Analysis Parameters
# ==============================================================================

# Quality Control Defaults
QC_DEFAULTS: Dict[str, float] = {
    "repavg": 0.95,  # Minimum locus repeatability (RepAvg)
    "callrate": 0.80,  # Minimum locus call rate
}

# Population assignment Defaults
POPULATION_DEFAULTS: Dict[str, int] = {
    "prefix_length": 3,  # Characters of the individual name used as population
}

# PCoA Defaults
PCOA_DEFAULTS: Dict[str, int] = {
    "n_axes": 3,  # Number of principal coordinate axes retained
}

# DArT report parsing Defaults
DART_DEFAULTS: Dict[str, str] = {
    "last_metric": "RepAvg",  # Last locus metric column before the individuals
    "missing": "-",  # Missing call symbol
    "format": "auto",  # "auto", "1row" or "2row"
}

# Population label given to every individual when no metadata is supplied
DEFAULT_POPULATION: str = "pop1"


@dataclass
class AnalysisConfig:
    """Options recognised by the analysis pipeline."""

    repavg_threshold: float = QC_DEFAULTS["repavg"]
    callrate_threshold: float = QC_DEFAULTS["callrate"]
    prefix_length: int = POPULATION_DEFAULTS["prefix_length"]
    substitutions: Dict[str, str] = field(default_factory=dict)
    sanitize_ids: bool = True
    n_axes: int = PCOA_DEFAULTS["n_axes"]
    filter_repavg: bool = True
    filter_callrate: bool = True
    filter_monomorphs: bool = True
    species: Optional[str] = None
    author: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("repavg_threshold", "callrate_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")
        if self.prefix_length < 1:
            raise ValueError(f"prefix_length must be positive, got {self.prefix_length}")
        if self.n_axes < 1:
            raise ValueError(f"n_axes must be positive, got {self.n_axes}")


# ==============================================================================
# Logging Configuration
# ==============================================================================

LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    log_file: Optional[Path] = None,
    level: int = logging.INFO,
) -> logging.Logger:
    """
    Configure logging for a pipeline run.

    Args:
        log_file: Path to log file (optional)
        level: Logging level (default: INFO)

    Returns:
        The package logger
    """
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    return logging.getLogger("dartseq_popgen")


if __name__ == "__main__":
    print("DArTseq Pipeline Configuration")
    print("=" * 50)
    print(f"Project Root: {PROJECT_ROOT}")
    print(f"Results Directory: {RESULTS_DIR}")
    print(f"Logs Directory: {LOGS_DIR}")
    print()
    print("Tool Availability:")
    for tool, available in check_all_tools().items():
        status = "✓" if available else "✗"
        path = get_tool_path(tool) or "Not found"
        print(f"  {status} {tool}: {path}")
