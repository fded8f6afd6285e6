#!/usr/bin/env python3
"""
Individual name correction and population assignment.

Individual identifiers are rewritten with an ordered substitution
dictionary and, optionally, sanitized so that only letters, digits, "_" and
"-" remain. When the report carries no population structure (one population
or fewer), each individual is assigned to the population given by the first
characters of its identifier.

Example:
    >>> from dartseq_popgen.preprocessing.normalize_ids import derive_populations
    >>> derive_populations(["AAA1", "AAA2", "BBB1"], prefix_length=3)
    ['AAA', 'AAA', 'BBB']
"""

import logging
import re
from typing import Dict, List, Optional, Sequence

from ..genotypes import GenotypeData
from ..utils.config import POPULATION_DEFAULTS


logger = logging.getLogger(__name__)

INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def apply_substitutions(name: str, substitutions: Dict[str, str]) -> str:
    """
    Replace every occurrence of each key by its value, in dictionary order.

    Example:
        >>> apply_substitutions("Sm 01.a", {" ": "", ".a": "A"})
        'Sm01A'
    """
    for old, new in substitutions.items():
        name = name.replace(old, new)
    return name


def sanitize_name(name: str) -> str:
    """Replace characters other than letters, digits, '_' and '-' by '_'."""
    return INVALID_NAME_CHARS.sub("_", name)


def rename_individuals(
    names: Sequence[str],
    substitutions: Optional[Dict[str, str]] = None,
    sanitize: bool = True,
) -> List[str]:
    """Rewrite a list of identifiers (substitutions first, then sanitizing)."""
    substitutions = substitutions or {}
    renamed = []
    for name in names:
        new_name = apply_substitutions(name, substitutions)
        if sanitize:
            new_name = sanitize_name(new_name)
        renamed.append(new_name)
    return renamed


def derive_populations(
    names: Sequence[str],
    prefix_length: int = POPULATION_DEFAULTS["prefix_length"],
) -> List[str]:
    """Population label from the first ``prefix_length`` characters of each name."""
    if prefix_length < 1:
        raise ValueError(f"prefix_length must be positive, got {prefix_length}")
    return [name[:prefix_length] for name in names]


def normalize_individuals(
    gd: GenotypeData,
    substitutions: Optional[Dict[str, str]] = None,
    prefix_length: int = POPULATION_DEFAULTS["prefix_length"],
    sanitize: bool = True,
) -> GenotypeData:
    """
    Rename individuals and derive populations when none are defined.

    Args:
        gd: Genotype data as loaded
        substitutions: Ordered mapping of substring -> replacement
        prefix_length: Characters used as population label
        sanitize: Replace characters outside [A-Za-z0-9_-] with "_"

    Returns:
        New GenotypeData with rewritten identifiers and population labels

    Raises:
        MalformedInputError: If renaming makes two identifiers identical
    """
    logger.info("Correcting individual names...")
    new_names = rename_individuals(gd.ind_names, substitutions, sanitize)

    changed = sum(1 for old, new in zip(gd.ind_names, new_names) if old != new)
    logger.info(f"Renamed {changed} of {gd.n_ind} individuals")

    populations = list(gd.populations)
    if gd.n_pop <= 1:
        populations = derive_populations(new_names, prefix_length)
        logger.info(
            f"Populations defined from the first {prefix_length} characters of the names"
        )
        logger.info(f"Populations identified: {len(set(populations))}")
    else:
        logger.info(f"Keeping {gd.n_pop} existing populations")

    return gd.with_labels(new_names, populations)
