"""
Purpose: Unit tests for quality_filter.py
Date: 2026-10-19

Tests verify:
1. Straightliner flag: SD == 0 flagged, < 2 answers missing
2. Composite rule: both blocks required, missing flag passes
3. Outlier nulling at |z| >= 6 leaves rows and other cells alone
"""

import numpy as np
import pandas as pd
import pytest

from wellbeing.derived.quality_filter import (
    add_quality_flags,
    apply_exclusions,
    compute_z_scores,
    exclusion_rule,
    null_outliers,
    straightliner_flag,
)
from wellbeing.study_data import MOTIVATION_ITEMS, SPANE_ITEMS, PipelineError

ITEMS = ["q1", "q2", "q3", "q4"]


def make_block(rows: list[list]) -> pd.DataFrame:
    return pd.DataFrame(rows, columns=ITEMS)


def make_respondent(spane, motivation) -> dict:
    """One respondent with every SPANE item = spane (or list) and motivation likewise."""
    spane = spane if isinstance(spane, list) else [spane] * len(SPANE_ITEMS)
    motivation = motivation if isinstance(motivation, list) else [motivation] * len(MOTIVATION_ITEMS)
    return {**dict(zip(SPANE_ITEMS, spane)), **dict(zip(MOTIVATION_ITEMS, motivation))}


def varied(n: int, top: int) -> list[int]:
    return [(i % top) + 1 for i in range(n)]


# =====
# Straightliner flag
# =====
class TestStraightlinerFlag:

    def test_identical_answers_flagged(self):
        flags = straightliner_flag(make_block([[3, 3, 3, 3]]), ITEMS)
        assert flags.iloc[0]

    def test_varied_answers_not_flagged(self):
        flags = straightliner_flag(make_block([[3, 3, 3, 4]]), ITEMS)
        assert not flags.iloc[0]

    def test_identical_with_missing_items_flagged(self):
        flags = straightliner_flag(make_block([[5, np.nan, 5, np.nan]]), ITEMS)
        assert flags.iloc[0]

    def test_single_answer_is_missing(self):
        flags = straightliner_flag(make_block([[5, np.nan, np.nan, np.nan]]), ITEMS)
        assert pd.isna(flags.iloc[0])

    def test_all_missing_is_missing(self):
        flags = straightliner_flag(make_block([[np.nan] * 4]), ITEMS)
        assert pd.isna(flags.iloc[0])

    def test_nullable_boolean_dtype(self):
        flags = straightliner_flag(make_block([[1, 1, 1, 1], [1, 2, 3, 4]]), ITEMS)
        assert str(flags.dtype) == "boolean"


# =====
# Composite exclusion
# =====
class TestExclusionRule:

    @pytest.mark.parametrize("affect,motivation,expected", [
        (True, True, True),
        (True, False, False),
        (False, True, False),
        (True, pd.NA, False),
        (pd.NA, True, False),
        (pd.NA, pd.NA, False),
    ])
    def test_truth_table(self, affect, motivation, expected):
        result = exclusion_rule(
            pd.Series([affect], dtype="boolean"),
            pd.Series([motivation], dtype="boolean"),
        )
        assert result.iloc[0] == expected

    def test_add_quality_flags(self):
        df = pd.DataFrame([
            make_respondent(3, 4),                                   # both blocks
            make_respondent(3, varied(len(MOTIVATION_ITEMS), 7)),    # affect only
            make_respondent([2] + [np.nan] * 11, 4),                 # affect not assessable
        ])
        flagged = add_quality_flags(df)

        assert list(flagged["excluded"]) == [True, False, False]
        assert pd.isna(flagged["straightliner_affect"].iloc[2])
        assert flagged["straightliner_motivation"].iloc[2]


# =====
# Outlier nulling
# =====
def exact_six_sigma_column() -> list[float]:
    """Values with mean 0 and SD exactly 1 where 6 and -6 have |z| == 6.0."""
    return [6.0, -6.0] + [0.0] * 71


class TestOutliers:

    def test_z_scores_use_sample_sd(self):
        z = compute_z_scores(pd.Series([1.0, 2.0, 3.0]))
        assert z.tolist() == pytest.approx([-1.0, 0.0, 1.0])

    def test_z_scores_ignore_missing(self):
        z = compute_z_scores(pd.Series([1.0, np.nan, 2.0, 3.0]))
        assert np.isnan(z.iloc[1])
        assert z.iloc[3] == pytest.approx(1.0)

    def test_z_scores_insufficient_data(self):
        z = compute_z_scores(pd.Series([1.0, np.nan]))
        assert z.isna().all()

    def test_z_exactly_six_is_nulled(self):
        df = pd.DataFrame({"hours": exact_six_sigma_column(), "xp": np.arange(73.0)})
        result = null_outliers(df, ["hours"])

        assert np.isnan(result.loc[0, "hours"])
        assert np.isnan(result.loc[1, "hours"])
        assert (result.loc[2:, "hours"] == 0).all()

    def test_other_cells_and_rows_untouched(self):
        df = pd.DataFrame({"hours": exact_six_sigma_column(), "xp": np.arange(73.0)})
        result = null_outliers(df, ["hours"])

        assert len(result) == len(df)
        pd.testing.assert_series_equal(result["xp"], df["xp"])

    def test_below_threshold_kept(self):
        df = pd.DataFrame({"hours": exact_six_sigma_column()})
        result = null_outliers(df, ["hours"], threshold=6.5)
        assert result["hours"].notna().all()

    def test_columns_standardized_independently(self):
        df = pd.DataFrame({
            "hours": exact_six_sigma_column(),
            "xp": [1000.0] + [1.0, 2.0] * 36,
        })
        result = null_outliers(df, ["hours", "xp"])
        assert np.isnan(result.loc[0, "hours"])
        assert np.isnan(result.loc[0, "xp"])
        assert result["xp"].iloc[1:].notna().all()

    def test_missing_column_raises(self):
        with pytest.raises(PipelineError, match="n_logins"):
            null_outliers(pd.DataFrame({"hours": [1.0]}), ["n_logins"])

    def test_input_not_modified(self):
        df = pd.DataFrame({"hours": exact_six_sigma_column()})
        null_outliers(df, ["hours"])
        assert df.loc[0, "hours"] == 6.0


# =====
# Exclusion snapshot
# =====
class TestApplyExclusions:

    def test_excluded_rows_dropped_outliers_nulled(self):
        n = 73
        df = pd.DataFrame({
            "player_id": [f"p{i}" for i in range(n + 1)],
            "hours": exact_six_sigma_column() + [500.0],
            "excluded": [False] * n + [True],
        })
        result = apply_exclusions(df, ["hours"])

        assert len(result) == n
        assert "p73" not in set(result["player_id"])
        # z computed on the retained sample, so the 500 never enters the SD
        assert np.isnan(result.loc[0, "hours"])
