"""
Purpose: Load raw survey and telemetry exports and map them to internal names
Date: 2026-10-19

Each platform folder holds one survey export and one file per telemetry table.
Files may be CSV, TSV or Excel. The rename adapters in study_data translate
platform-specific export names into the shared internal scheme.

SURVEY OUTPUT:
    player_id, survey_time, item columns, self-report and demographics.
    Only consented respondents; duplicate or missing IDs dropped entirely.

TELEMETRY OUTPUT:
    One DataFrame per table with player_id normalized to string and every
    timestamp column parsed to UTC. Unparseable timestamps or summed values
    raise PipelineError; blank cells stay missing.
"""

from pathlib import Path
from typing import Dict, List

import numpy as np
import pandas as pd

from wellbeing.study_data import (
    DATASTORE,
    PLAYER_ID,
    SESSION_END,
    SESSION_START,
    SPANE_ITEMS,
    MOTIVATION_ITEMS,
    SELF_REPORT_COLUMNS,
    SURVEY_COLUMNS,
    SURVEY_TIME,
    TABLE_EXTENSIONS,
    PipelineError,
    PlatformStudy,
    require_columns,
    to_utc,
)

CONSENT_COLUMN = "consent"
CONSENT_YES = {"yes", "true", "1", "1.0", "i consent"}


# =====
# File discovery
# =====
def find_table_file(folder: Path, stem: str) -> Path:
    """Find the single export file named <stem>.<ext> in a folder."""
    folder = Path(folder)
    if not folder.exists():
        raise FileNotFoundError(f"Folder not found: {folder}")

    matches = sorted(
        path for path in folder.glob(f"{stem}.*")
        if path.suffix.lower() in TABLE_EXTENSIONS
    )
    if len(matches) == 0:
        raise FileNotFoundError(f"No '{stem}' export found in {folder}")
    if len(matches) > 1:
        raise PipelineError(
            f"Multiple '{stem}' exports found in {folder}: "
            f"{[p.name for p in matches]}. Expected exactly one."
        )
    return matches[0]


def read_table(path: Path) -> pd.DataFrame:
    """Read a delimited or spreadsheet file into a DataFrame."""
    suffix = Path(path).suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(path)
    if suffix == ".tsv":
        return pd.read_csv(path, sep="\t")
    if suffix == ".xlsx":
        return pd.read_excel(path)
    raise PipelineError(f"Unsupported file type: {path}")


# =====
# Shared cleaning helpers
# =====
def normalize_ids(values: pd.Series) -> pd.Series:
    """Convert player identifiers to trimmed strings; blanks become missing."""
    ids = values.astype("string").str.strip()
    # Numeric IDs read alongside blanks come back as floats
    ids = ids.str.replace(r"\.0$", "", regex=True)
    return ids.mask(ids.eq("").fillna(False))


def rename_columns(df: pd.DataFrame, renames: Dict[str, str], table: str) -> pd.DataFrame:
    """Check that every raw column in the adapter exists, then rename."""
    require_columns(df, list(renames), table)
    return df.rename(columns=renames)


# =====
# Survey
# =====
def load_survey(study: PlatformStudy, datastore: Path = DATASTORE) -> pd.DataFrame:
    """Load the survey export for a platform and return one row per respondent."""
    path = find_table_file(study.raw_dir(datastore), "survey")
    raw = read_table(path)
    print(f"  Survey: {path.name} ({len(raw)} rows)")

    renames = {**study.survey_renames, CONSENT_COLUMN: CONSENT_COLUMN}
    df = rename_columns(raw, renames, f"{study.name} survey")
    df = filter_consented(df)
    df = df[SURVEY_COLUMNS].copy()

    df[PLAYER_ID] = normalize_ids(df[PLAYER_ID])
    df[SURVEY_TIME] = to_utc(df[SURVEY_TIME], f"{study.name} survey {SURVEY_TIME}")
    numeric_cols = SPANE_ITEMS + MOTIVATION_ITEMS + SELF_REPORT_COLUMNS
    df[numeric_cols] = df[numeric_cols].apply(pd.to_numeric, errors="coerce")

    return drop_invalid_ids(df)


def filter_consented(df: pd.DataFrame) -> pd.DataFrame:
    """Keep respondents who gave consent."""
    answers = df[CONSENT_COLUMN].astype("string").str.strip().str.lower()
    consented = answers.isin(CONSENT_YES).fillna(False).astype(bool)
    n_dropped = int((~consented).sum())
    if n_dropped:
        print(f"    Dropped {n_dropped} rows without consent")
    return df[consented].drop(columns=CONSENT_COLUMN)


def drop_invalid_ids(df: pd.DataFrame) -> pd.DataFrame:
    """Drop rows with a missing player ID and every copy of a duplicated ID.

    Telemetry cannot be attributed to either kind of row, so no copy is kept.
    """
    missing = df[PLAYER_ID].isna()
    duplicated = df[PLAYER_ID].duplicated(keep=False) & ~missing

    if missing.any():
        print(f"    Warning: Dropping {int(missing.sum())} rows with missing player ID")
    if duplicated.any():
        n_ids = df.loc[duplicated, PLAYER_ID].nunique()
        print(f"    Warning: Dropping {int(duplicated.sum())} rows sharing {n_ids} duplicated IDs")

    return df[~(missing | duplicated)].reset_index(drop=True)


# =====
# Telemetry
# =====
def timestamp_columns(study: PlatformStudy, table: str) -> List[str]:
    """Internal timestamp columns of a telemetry table."""
    if table == "sessions":
        return [SESSION_START, SESSION_END]
    if table == "friends":
        return ["friend_time"]
    return [s.timestamp_col for s in study.event_sources if s.table == table]


def load_telemetry_table(
    study: PlatformStudy,
    table: str,
    datastore: Path = DATASTORE,
) -> pd.DataFrame:
    """Load one telemetry table and apply the platform rename adapter."""
    folder = study.raw_dir(datastore) / "telemetry"
    path = find_table_file(folder, table)
    raw = read_table(path)
    print(f"  Telemetry {table}: {path.name} ({len(raw)} rows)")

    if table not in study.telemetry_renames:
        raise PipelineError(f"No column adapter for {study.name} table '{table}'")
    df = rename_columns(raw, study.telemetry_renames[table], f"{study.name} {table}")

    df[PLAYER_ID] = normalize_ids(df[PLAYER_ID])
    if table == "friends":
        df["friend_id"] = normalize_ids(df["friend_id"])
    for col in timestamp_columns(study, table):
        df[col] = to_utc(df[col], f"{study.name} {table} {col}")
    for source in study.event_sources:
        if source.table == table and source.how == "sum":
            df[source.value_col] = to_numeric_strict(
                df[source.value_col], f"{study.name} {table} {source.value_col}"
            )

    return df


def to_numeric_strict(values: pd.Series, column: str) -> pd.Series:
    """Convert a telemetry value column to numbers; blanks stay missing, anything else unparseable raises."""
    numeric = pd.to_numeric(values, errors="coerce")
    blank = values.isna() | values.astype("string").str.strip().eq("").fillna(False)
    bad = numeric.isna() & ~blank
    if bad.any():
        examples = values[bad].astype(str).unique()[:3].tolist()
        raise PipelineError(
            f"Column '{column}' has {int(bad.sum())} non-numeric values, e.g. {examples}"
        )
    return numeric


def load_telemetry(study: PlatformStudy, datastore: Path = DATASTORE) -> Dict[str, pd.DataFrame]:
    """Load every telemetry table the platform exports."""
    return {
        table: load_telemetry_table(study, table, datastore)
        for table in study.telemetry_tables
    }


def summarize_survey(df: pd.DataFrame):
    """Print basic counts for a cleaned survey table."""
    print(f"    Respondents: {len(df)}")
    if len(df):
        print(f"    Survey window: {df[SURVEY_TIME].min()} to {df[SURVEY_TIME].max()}")
        n_missing_time = int(df[SURVEY_TIME].isna().sum())
        if n_missing_time:
            print(f"    Warning: {n_missing_time} respondents without a survey timestamp")
        complete = df[SPANE_ITEMS].notna().all(axis=1)
        print(f"    Complete SPANE responses: {int(complete.sum())} "
              f"({100 * np.mean(complete):.1f}%)")
