"""
Shared study configuration for the game play and well-being pipeline.

This module holds everything the clean/ and derived/ scripts agree on: where the
data lives, which platforms exist, which telemetry tables each platform exports,
the column contract of every table, and the numeric thresholds used downstream.

Data layout:
- datastore/raw/<platform>/survey.<csv|tsv|xlsx>
- datastore/raw/<platform>/telemetry/<table>.<csv|tsv|xlsx>
- datastore/derived/<platform>_<snapshot>.<csv|parquet>

Usage Example:
    study = get_platform("ea")
    for source in study.event_sources:
        print(source.table, source.timestamp_col, source.output_col)

Execute with: python -m wellbeing.study_data
"""

import argparse
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd

# =====
# File paths
# =====
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATASTORE = PROJECT_ROOT / "datastore"
RAW_DIR = DATASTORE / "raw"
DERIVED_DIR = DATASTORE / "derived"

TABLE_EXTENSIONS = (".csv", ".tsv", ".xlsx")

# =====
# Study constants
# =====
WINDOW_DAYS = 14
OUTLIER_Z = 6.0

PLAYER_ID = "player_id"
SURVEY_TIME = "survey_time"
SESSION_ID = "session_id"
SESSION_START = "session_start"
SESSION_END = "session_end"


class PipelineError(Exception):
    """Raised when an input table is malformed and the run cannot continue."""
    pass


@dataclass(frozen=True)
class EventSource:
    """One telemetry event table folded to a single per-player value.

    how is one of "count" (rows), "sum" (of value_col) or "distinct"
    (unique values of value_col).
    """
    table: str
    timestamp_col: str
    output_col: str
    how: str = "count"
    value_col: Optional[str] = None

    @property
    def required_columns(self) -> List[str]:
        cols = [PLAYER_ID, self.timestamp_col]
        if self.value_col:
            cols.append(self.value_col)
        return cols


@dataclass(frozen=True)
class PlatformStudy:
    """Everything platform-specific: raw column names, tables and allow-lists."""
    name: str
    survey_renames: Dict[str, str]
    telemetry_renames: Dict[str, Dict[str, str]]
    event_sources: List[EventSource] = field(default_factory=list)
    has_friends: bool = False
    outlier_columns: List[str] = field(default_factory=list)

    @property
    def telemetry_tables(self) -> List[str]:
        tables = ["sessions"] + [s.table for s in self.event_sources]
        if self.has_friends:
            tables.append("friends")
        return tables

    @property
    def feature_columns(self) -> List[str]:
        cols = ["hours", "n_sessions"] + [s.output_col for s in self.event_sources]
        if self.has_friends:
            cols.append("n_friends")
        return cols

    def raw_dir(self, datastore: Path = DATASTORE) -> Path:
        return Path(datastore) / "raw" / self.name


# =====
# Survey item layout (internal names)
# =====
SPANE_ITEMS = [f"spane_{i}" for i in range(1, 13)]
MOTIVATION_ITEMS = (
    [f"autonomy_{i}" for i in range(1, 4)]
    + [f"competence_{i}" for i in range(1, 4)]
    + [f"relatedness_{i}" for i in range(1, 4)]
    + [f"enjoyment_{i}" for i in range(1, 5)]
    + [f"extrinsic_{i}" for i in range(1, 5)]
)
SELF_REPORT_COLUMNS = ["active_play_hours", "active_play_minutes"]
DEMOGRAPHIC_COLUMNS = ["age", "gender", "experience"]

SURVEY_COLUMNS = (
    [PLAYER_ID, SURVEY_TIME]
    + SPANE_ITEMS
    + MOTIVATION_ITEMS
    + SELF_REPORT_COLUMNS
    + DEMOGRAPHIC_COLUMNS
)

# Qualtrics exports use the same block/item naming on both platforms
SHARED_ITEM_RENAMES = {
    **{f"SPANE_{i}": f"spane_{i}" for i in range(1, 13)},
    **{f"PENS_autonomy_{i}": f"autonomy_{i}" for i in range(1, 4)},
    **{f"PENS_competence_{i}": f"competence_{i}" for i in range(1, 4)},
    **{f"PENS_relatedness_{i}": f"relatedness_{i}" for i in range(1, 4)},
    **{f"IMI_enjoyment_{i}": f"enjoyment_{i}" for i in range(1, 5)},
    **{f"extrinsic_regulation_{i}": f"extrinsic_{i}" for i in range(1, 5)},
    "active_play_1": "active_play_hours",
    "active_play_2": "active_play_minutes",
    "age": "age",
    "gender": "gender",
    "experience": "experience",
}

SESSION_COLUMNS = [PLAYER_ID, SESSION_ID, SESSION_START, SESSION_END]

# =====
# Platform definitions
# =====
NINTENDO = PlatformStudy(
    name="nintendo",
    survey_renames={
        "code": PLAYER_ID,
        "EndDate": SURVEY_TIME,
        **SHARED_ITEM_RENAMES,
    },
    telemetry_renames={
        "sessions": {
            "anonymised_code": PLAYER_ID,
            "game_session": SESSION_ID,
            "session_start_time": SESSION_START,
            "session_end_time": SESSION_END,
        },
    },
    outlier_columns=["hours", "active_play", "n_sessions"],
)

EA = PlatformStudy(
    name="ea",
    survey_renames={
        "player_id": PLAYER_ID,
        "EndDate": SURVEY_TIME,
        **SHARED_ITEM_RENAMES,
    },
    telemetry_renames={
        "sessions": {
            "player_id": PLAYER_ID,
            "game_session_id": SESSION_ID,
            "session_start_date": SESSION_START,
            "session_end_date": SESSION_END,
        },
        "authentications": {"player_id": PLAYER_ID, "authentication_time": "auth_time"},
        "characters": {"player_id": PLAYER_ID, "character": "character_id", "event_time": "character_time"},
        "friends": {"player_id": PLAYER_ID, "friend_id": "friend_id", "friend_time": "friend_time"},
        "gestures": {"player_id": PLAYER_ID, "gesture_time": "gesture_time"},
        "leveling": {"player_id": PLAYER_ID, "level_up_time": "level_time"},
        "prestige": {"player_id": PLAYER_ID, "prestige_time": "prestige_time"},
        "experience": {"player_id": PLAYER_ID, "xp_amount": "xp", "xp_time": "xp_time"},
    },
    event_sources=[
        EventSource("authentications", "auth_time", "n_logins"),
        EventSource("characters", "character_time", "n_characters", "distinct", "character_id"),
        EventSource("gestures", "gesture_time", "n_gestures"),
        EventSource("leveling", "level_time", "n_levelups"),
        EventSource("prestige", "prestige_time", "n_prestige"),
        EventSource("experience", "xp_time", "xp", "sum", "xp"),
    ],
    has_friends=True,
    outlier_columns=[
        "hours", "active_play", "n_sessions", "n_logins", "n_characters",
        "n_friends", "n_gestures", "n_levelups", "n_prestige", "xp",
    ],
)

PLATFORMS = {p.name: p for p in (NINTENDO, EA)}


def get_platform(name: str) -> PlatformStudy:
    """Look up a platform definition by key."""
    if name not in PLATFORMS:
        raise PipelineError(
            f"Unknown platform '{name}'. Expected one of {sorted(PLATFORMS)}"
        )
    return PLATFORMS[name]


# =====
# Column validation
# =====
def require_columns(df: pd.DataFrame, columns: Sequence[str], table: str):
    """Fail the run if any required column is absent from a table."""
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise PipelineError(
            f"Table '{table}' is missing required columns: {missing}. "
            f"Available: {list(df.columns)}"
        )


def to_utc(values: pd.Series, column: str = "timestamp") -> pd.Series:
    """Parse ISO-8601 timestamps as UTC.

    Each value is parsed on its own, so precision and suffixes may differ
    between rows. Blank cells become NaT; any other value that does not parse
    raises PipelineError.
    """
    if pd.api.types.is_datetime64_any_dtype(values):
        return pd.to_datetime(values, utc=True)

    text = values.astype("string").str.strip()
    blank = text.isna() | text.eq("").fillna(False)
    parsed = pd.to_datetime(text.mask(blank), utc=True, format="ISO8601", errors="coerce")

    bad = parsed.isna() & ~blank
    if bad.any():
        examples = text[bad].unique()[:3].tolist()
        raise PipelineError(
            f"Column '{column}' has {int(bad.sum())} unparseable timestamps, e.g. {examples}"
        )
    return parsed


def main():
    """Print the platform definitions."""
    parser = argparse.ArgumentParser(description="Show study platform definitions")
    parser.add_argument("--platform", choices=sorted(PLATFORMS), help="Only show one platform")
    args = parser.parse_args()

    names = [args.platform] if args.platform else list(PLATFORMS)
    print("=" * 60)
    print("STUDY PLATFORMS")
    print("=" * 60)
    print(f"Window: {WINDOW_DAYS} days before survey, outlier |z| >= {OUTLIER_Z}")
    for name in names:
        study = PLATFORMS[name]
        print(f"\n{study.name}")
        print(f"  Telemetry tables: {study.telemetry_tables}")
        print(f"  Features: {study.feature_columns}")
        print(f"  Outlier allow-list: {study.outlier_columns}")


if __name__ == "__main__":
    main()
