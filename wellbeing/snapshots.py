"""
Snapshot persistence for derived tables.

Every stage writes a new file named <platform>_<stage>.<ext> under
datastore/derived. CSV is the default; parquet goes through pyarrow.
"""

from pathlib import Path

import pandas as pd

from wellbeing.study_data import DERIVED_DIR, PipelineError

SNAPSHOT_STAGES = ("raw_merged", "sessions_reconciled", "no_exclusions", "exclusions")
FORMATS = ("csv", "parquet")


def snapshot_path(platform: str, stage: str, output_dir: Path = DERIVED_DIR, fmt: str = "csv") -> Path:
    """Path of a snapshot file."""
    if stage not in SNAPSHOT_STAGES:
        raise PipelineError(f"Unknown snapshot stage '{stage}'")
    if fmt not in FORMATS:
        raise PipelineError(f"Unknown snapshot format '{fmt}'. Expected one of {FORMATS}")
    return Path(output_dir) / f"{platform}_{stage}.{fmt}"


def save_snapshot(
    df: pd.DataFrame,
    platform: str,
    stage: str,
    output_dir: Path = DERIVED_DIR,
    fmt: str = "csv",
) -> Path:
    """Write a snapshot and return its path."""
    path = snapshot_path(platform, stage, output_dir, fmt)
    path.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "parquet":
        df.to_parquet(path, index=False)
    else:
        df.to_csv(path, index=False)
    print(f"  Saved {stage}: {path} ({len(df)} rows)")
    return path


def load_snapshot(platform: str, stage: str, output_dir: Path = DERIVED_DIR, fmt: str = "csv") -> pd.DataFrame:
    """Read a snapshot written by save_snapshot."""
    path = snapshot_path(platform, stage, output_dir, fmt)
    if not path.exists():
        raise FileNotFoundError(
            f"Snapshot not found: {path}. Run build_study_dataset.py first."
        )
    if fmt == "parquet":
        return pd.read_parquet(path)
    return pd.read_csv(path)
