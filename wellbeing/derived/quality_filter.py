"""
Purpose: Flag inattentive respondents and null extreme values
Date: 2026-10-19

Straightlining:
    The sample SD (ddof=1) of a respondent's answers within a block is
    computed over non-missing items. SD == 0 means every answer was identical.
    Fewer than two answers leaves the flag missing, which counts as a pass.
    A respondent is excluded only when flagged on BOTH the affect block and
    the motivation block.

Outliers:
    Each allow-listed variable is standardized over the analysis sample
    (mean and SD of its non-missing values). Cells with |z| >= 6 are set to
    missing. Rows are never dropped here, only the offending cell.

OUTPUT VARIABLES:
    straightliner_affect: Nullable boolean flag for the SPANE block
    straightliner_motivation: Nullable boolean flag for the motivation block
    excluded: True when flagged on both blocks
"""

from typing import List

import numpy as np
import pandas as pd
from scipy import stats

from wellbeing.study_data import MOTIVATION_ITEMS, OUTLIER_Z, SPANE_ITEMS, require_columns

STRAIGHTLINING_BLOCKS = {
    "straightliner_affect": SPANE_ITEMS,
    "straightliner_motivation": MOTIVATION_ITEMS,
}


# =====
# Straightlining
# =====
def straightliner_flag(df: pd.DataFrame, items: List[str]) -> pd.Series:
    """Flag rows whose non-missing answers in a block have SD exactly 0."""
    sd = df[items].astype(float).std(axis=1, ddof=1, skipna=True)
    flag = pd.Series(sd == 0, index=df.index, dtype="boolean")
    flag[sd.isna()] = pd.NA
    return flag


def add_quality_flags(df: pd.DataFrame) -> pd.DataFrame:
    """Add straightliner flags for every block and the composite exclusion."""
    flagged = df.copy()
    for flag_col, items in STRAIGHTLINING_BLOCKS.items():
        flagged[flag_col] = straightliner_flag(flagged, items)
    flagged["excluded"] = exclusion_rule(
        flagged["straightliner_affect"], flagged["straightliner_motivation"]
    )
    return flagged


def exclusion_rule(affect: pd.Series, motivation: pd.Series) -> pd.Series:
    """Excluded only when both flags are True; a missing flag passes."""
    both = affect.astype("boolean") & motivation.astype("boolean")
    return both.fillna(False).astype(bool)


# =====
# Outliers
# =====
def compute_z_scores(values: pd.Series) -> pd.Series:
    """Standardize using mean and SD (ddof=1) of the non-missing values."""
    numeric = pd.to_numeric(values, errors="coerce").astype(float)
    if numeric.notna().sum() < 2:
        return pd.Series(np.nan, index=values.index)
    with np.errstate(divide="ignore", invalid="ignore"):
        z = stats.zscore(numeric.to_numpy(), ddof=1, nan_policy="omit")
    return pd.Series(z, index=values.index)


def null_outliers(
    df: pd.DataFrame,
    columns: List[str],
    threshold: float = OUTLIER_Z,
) -> pd.DataFrame:
    """Replace cells with |z| >= threshold by missing, one variable at a time.

    All z-scores are computed before any cell is nulled.
    """
    require_columns(df, columns, "analysis sample")
    cleaned = df.copy()
    z_scores = {col: compute_z_scores(cleaned[col]) for col in columns}
    for col, z in z_scores.items():
        outliers = z.abs() >= threshold
        if outliers.any():
            print(f"    {col}: nulled {int(outliers.sum())} values with |z| >= {threshold:g}")
        cleaned[col] = cleaned[col].astype(float).mask(outliers, np.nan)
    return cleaned


# =====
# Snapshot split
# =====
def apply_exclusions(
    flagged: pd.DataFrame,
    outlier_columns: List[str],
    threshold: float = OUTLIER_Z,
) -> pd.DataFrame:
    """Drop excluded respondents, then null outliers over the remaining sample."""
    kept = flagged[~flagged["excluded"]].reset_index(drop=True)
    print(f"    Excluded straightliners: {len(flagged) - len(kept)}")
    return null_outliers(kept, outlier_columns, threshold)


def print_summary(flagged: pd.DataFrame):
    """Print flag counts, keeping missing flags separate."""
    for flag_col in STRAIGHTLINING_BLOCKS:
        counts = flagged[flag_col].value_counts(dropna=False)
        n_true = int(counts.get(True, 0))
        n_missing = int(flagged[flag_col].isna().sum())
        print(f"    {flag_col}: {n_true} flagged, {n_missing} not assessable")
    print(f"    Flagged on both blocks: {int(flagged['excluded'].sum())}")
