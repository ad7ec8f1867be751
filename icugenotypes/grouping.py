# File: icugenotypes/grouping.py
# Location: icugenotypes/icugenotypes/grouping.py
"""
Collapsing of 3-level genotypes into 2-level groups.

The collapse for each locus is a fixed analyst decision recorded in
config.json: the heterozygous level was paired with the homozygous level
whose signed residual (observed - expected) in the preliminary 3-level
chi-squared test had the same sign. The mapping is loaded as data here and
never re-derived at runtime; ``signed_residuals()`` only exposes the residuals
so the decision can be reviewed in the report.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

import numpy as np
import pandas as pd

from .exceptions import DataValidationError

logger = logging.getLogger("icugenotypes")


@dataclass(frozen=True)
class GroupingMap:
    """Fixed mapping of one locus' three genotype levels to two collapsed levels."""

    locus: str
    levels: Tuple[str, str, str]
    mapping: Dict[str, str] = field(default_factory=dict)
    collapsed_levels: Tuple[str, str] = ("", "")

    def __post_init__(self) -> None:
        if set(self.mapping) != set(self.levels):
            raise DataValidationError(
                f"Grouping for locus '{self.locus}' must map exactly the levels "
                f"{list(self.levels)}, got {sorted(self.mapping)}",
                field=self.locus,
            )
        if len(self.collapsed_levels) != 2 or len(set(self.collapsed_levels)) != 2:
            raise DataValidationError(
                f"Grouping for locus '{self.locus}' must declare two distinct collapsed "
                f"levels, got {list(self.collapsed_levels)}",
                field=self.locus,
            )
        targets = set(self.mapping.values())
        if targets != set(self.collapsed_levels):
            raise DataValidationError(
                f"Grouping for locus '{self.locus}' maps onto {sorted(targets)}, "
                f"expected both of {list(self.collapsed_levels)}",
                field=self.locus,
            )

    @property
    def rare_group(self) -> str:
        """Collapsed level containing the homozygous-rare genotype."""
        return self.mapping[self.levels[2]]

    @property
    def common_group(self) -> str:
        """Collapsed level not containing the homozygous-rare genotype."""
        return next(level for level in self.collapsed_levels if level != self.rare_group)

    def collapse(self, genotypes: pd.Series) -> pd.Series:
        """Map genotype calls to the ordered 2-level collapsed variable."""
        values = pd.Series(genotypes).astype(object)
        unexpected = sorted(set(values.dropna()) - set(self.levels))
        if unexpected:
            raise DataValidationError(
                f"Locus '{self.locus}': cannot collapse unexpected level(s) {unexpected}",
                field=self.locus,
            )
        collapsed = values.map(self.mapping)
        return pd.Series(
            pd.Categorical(collapsed, categories=list(self.collapsed_levels), ordered=True),
            index=values.index,
            name=f"{self.locus}_collapsed",
        )


def grouping_from_locus(locus: Dict[str, Any]) -> GroupingMap:
    """Build a GroupingMap from one locus entry of the configuration."""
    grouping = locus.get("grouping")
    if not grouping:
        raise DataValidationError(f"Locus '{locus['name']}' has no grouping configured")
    return GroupingMap(
        locus=locus["name"],
        levels=tuple(locus["levels"]),
        mapping=dict(grouping["mapping"]),
        collapsed_levels=tuple(grouping["collapsed_levels"]),
    )


def load_grouping_maps(cfg: Dict[str, Any]) -> Dict[str, GroupingMap]:
    """Return a GroupingMap per configured locus, keyed by locus name."""
    maps = {locus["name"]: grouping_from_locus(locus) for locus in cfg["loci"]}
    logger.debug(f"Loaded grouping maps for loci {list(maps)}")
    return maps


def signed_residuals(table: pd.DataFrame) -> pd.DataFrame:
    """
    Observed minus expected counts under independence.

    Parameters
    ----------
    table : pd.DataFrame
        Contingency table of non-negative counts.

    Returns
    -------
    pd.DataFrame
        Same shape as ``table``. Expected counts are row_total * col_total / N.
    """
    observed = table.to_numpy(dtype=float)
    total = observed.sum()
    if total == 0:
        return pd.DataFrame(np.zeros_like(observed), index=table.index, columns=table.columns)
    expected = np.outer(observed.sum(axis=1), observed.sum(axis=0)) / total
    return pd.DataFrame(observed - expected, index=table.index, columns=table.columns)

