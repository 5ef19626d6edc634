"""
Purpose: Compute psychometric scale scores from item-level survey columns
Date: 2026-10-19

Scores are computed per respondent from the internal item columns produced by
clean/load_raw.py. Missing items are ignored; a scale with no answered items
is missing rather than zero.

OUTPUT VARIABLES:
    spane_positive: Mean of SPANE items 1, 3, 5, 7, 10, 12 (range 1-5)
    spane_negative: Mean of SPANE items 2, 4, 6, 8, 9, 11 (range 1-5)
    spane_balance: spane_positive - spane_negative (range -4 to 4)
    autonomy: Mean of 3 items (range 1-7)
    competence: Mean of 3 items (range 1-7)
    relatedness: Mean of 3 items (range 1-7)
    enjoyment: Mean of 4 items, item 3 reverse coded (range 1-7)
    extrinsic: Mean of 4 items (range 1-7)
    active_play: Self-reported hours of play in the last two weeks
"""

from dataclasses import dataclass, field
from typing import List

import numpy as np
import pandas as pd

# =====
# Scale definitions
# =====
@dataclass(frozen=True)
class ScaleDefinition:
    """A composite score over a block of Likert items."""
    name: str
    items: List[str]
    scale_min: int
    scale_max: int
    reversed_items: List[str] = field(default_factory=list)
    method: str = "mean"


SCALES = [
    ScaleDefinition("spane_positive", [f"spane_{i}" for i in (1, 3, 5, 7, 10, 12)], 1, 5),
    ScaleDefinition("spane_negative", [f"spane_{i}" for i in (2, 4, 6, 8, 9, 11)], 1, 5),
    ScaleDefinition("autonomy", [f"autonomy_{i}" for i in range(1, 4)], 1, 7),
    ScaleDefinition("competence", [f"competence_{i}" for i in range(1, 4)], 1, 7),
    ScaleDefinition("relatedness", [f"relatedness_{i}" for i in range(1, 4)], 1, 7),
    ScaleDefinition(
        "enjoyment",
        [f"enjoyment_{i}" for i in range(1, 5)],
        1, 7,
        reversed_items=["enjoyment_3"],
    ),
    ScaleDefinition("extrinsic", [f"extrinsic_{i}" for i in range(1, 5)], 1, 7),
]


# =====
# Main function
# =====
def score_survey(survey: pd.DataFrame, scales: List[ScaleDefinition] = SCALES) -> pd.DataFrame:
    """Add every scale score, SPANE balance and active play to a survey table."""
    scored = survey.copy()
    for scale in scales:
        scored[scale.name] = score_scale(scored, scale)
    scored["spane_balance"] = spane_balance(scored)
    scored["active_play"] = combine_active_play(
        scored["active_play_hours"], scored["active_play_minutes"]
    )
    return scored


# =====
# Reverse coding
# =====
def reverse_code(values: pd.Series, scale_min: int, scale_max: int) -> pd.Series:
    """Reverse code a Likert item: min + max - value. Missing stays missing."""
    return (scale_min + scale_max) - values


# =====
# Composite scoring
# =====
def score_scale(df: pd.DataFrame, scale: ScaleDefinition) -> pd.Series:
    """Mean or sum across a scale's items, ignoring missing items."""
    items = df[scale.items].astype(float)
    for item in scale.reversed_items:
        items[item] = reverse_code(items[item], scale.scale_min, scale.scale_max)

    if scale.method == "mean":
        return items.mean(axis=1, skipna=True)
    if scale.method == "sum":
        # min_count keeps an all-missing block missing instead of 0
        return items.sum(axis=1, skipna=True, min_count=1)
    raise ValueError(f"Unknown scoring method '{scale.method}' for {scale.name}")


def spane_balance(df: pd.DataFrame) -> pd.Series:
    """SPANE balance = positive mean - negative mean."""
    return df["spane_positive"] - df["spane_negative"]


def combine_active_play(hours: pd.Series, minutes: pd.Series) -> pd.Series:
    """Hours plus minutes/60; missing only when both parts are missing."""
    hours = pd.to_numeric(hours, errors="coerce")
    minutes = pd.to_numeric(minutes, errors="coerce")
    total = hours.fillna(0) + minutes.fillna(0) / 60
    return total.where(hours.notna() | minutes.notna(), np.nan)


def print_summary(df: pd.DataFrame, scales: List[ScaleDefinition] = SCALES):
    """Print ranges of the computed scores."""
    print("\nScale score ranges:")
    for col in [s.name for s in scales] + ["spane_balance", "active_play"]:
        n_missing = int(df[col].isna().sum())
        print(f"  {col}: {df[col].min():.2f} - {df[col].max():.2f} "
              f"(mean={df[col].mean():.2f}, missing={n_missing})")
