"""
Purpose: Build the per-platform analysis datasets from raw survey and telemetry
Date: 2026-10-19

Pipeline per platform:
    1. Load survey, rename to internal names, keep consented unique IDs
    2. Load telemetry tables
    3. Reconcile session fragments and derive durations
    4. Aggregate telemetry inside the 14-day pre-survey window
    5. Save raw merged snapshot (survey items + telemetry features)
    6. Score scales and add straightliner flags -> no_exclusions snapshot
    7. Drop straightliners, null |z| >= 6 outliers -> exclusions snapshot

OUTPUT FILES (datastore/derived):
    <platform>_raw_merged, <platform>_sessions_reconciled,
    <platform>_no_exclusions, <platform>_exclusions

Execute with: python -m wellbeing.derived.build_study_dataset --platform all
"""

import argparse
import sys
from pathlib import Path
from typing import Dict

import pandas as pd

from wellbeing.clean import load_raw
from wellbeing.derived import quality_filter, reconcile_sessions, score_scales
from wellbeing.derived import windowed_telemetry
from wellbeing.snapshots import FORMATS, save_snapshot
from wellbeing.study_data import (
    DATASTORE,
    OUTLIER_Z,
    PLATFORMS,
    WINDOW_DAYS,
    PlatformStudy,
    get_platform,
)


# =====
# Main function
# =====
def main(argv=None):
    """Build datasets for the requested platforms."""
    args = parse_args(argv)
    names = list(PLATFORMS) if args.platform == "all" else [args.platform]
    datastore = Path(args.datastore)
    output_dir = Path(args.output_dir) if args.output_dir else datastore / "derived"

    try:
        results = {}
        for name in names:
            results[name] = build_platform(
                get_platform(name), datastore, output_dir, args.format,
                days=args.window_days, threshold=args.outlier_z,
            )
    except Exception as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)

    return results


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build game play and well-being datasets")
    parser.add_argument("--platform", choices=["all"] + sorted(PLATFORMS), default="all")
    parser.add_argument("--datastore", default=DATASTORE, help="Folder holding raw/ inputs")
    parser.add_argument("--output-dir", help="Snapshot folder (default: <datastore>/derived)")
    parser.add_argument("--format", choices=FORMATS, default="csv")
    parser.add_argument("--window-days", type=int, default=WINDOW_DAYS)
    parser.add_argument("--outlier-z", type=float, default=OUTLIER_Z)
    return parser.parse_args(argv)


# =====
# Platform pipeline
# =====
def build_platform(
    study: PlatformStudy,
    datastore: Path = DATASTORE,
    output_dir: Path = None,
    fmt: str = "csv",
    days: int = WINDOW_DAYS,
    threshold: float = OUTLIER_Z,
) -> Dict[str, pd.DataFrame]:
    """Run every stage for one platform and persist the snapshots."""
    output_dir = Path(output_dir) if output_dir else Path(datastore) / "derived"
    print_header(f"{study.name.upper()} PIPELINE")

    print("Loading raw data...")
    survey = load_raw.load_survey(study, datastore)
    load_raw.summarize_survey(survey)
    tables = load_raw.load_telemetry(study, datastore)

    print("\nReconciling sessions...")
    sessions = reconcile_sessions.reconcile_sessions(tables["sessions"])
    reconcile_sessions.print_summary(tables["sessions"], sessions)
    sessions = reconcile_sessions.add_session_durations(sessions)

    print(f"\nAggregating telemetry ({days}-day window)...")
    summary = windowed_telemetry.build_windowed_summary(survey, sessions, tables, study, days)
    windowed_telemetry.print_summary(summary, survey, study)
    raw_merged = windowed_telemetry.join_to_survey(survey, summary)

    print("\nScoring scales and flagging straightliners...")
    scored = score_scales.score_survey(raw_merged)
    score_scales.print_summary(scored)
    no_exclusions = quality_filter.add_quality_flags(scored)
    quality_filter.print_summary(no_exclusions)

    print("\nApplying exclusions...")
    exclusions = quality_filter.apply_exclusions(
        no_exclusions, study.outlier_columns, threshold
    )

    print("\nSaving snapshots...")
    snapshots = {
        "raw_merged": raw_merged,
        "sessions_reconciled": sessions,
        "no_exclusions": no_exclusions,
        "exclusions": exclusions,
    }
    for stage, df in snapshots.items():
        save_snapshot(df, study.name, stage, output_dir, fmt)

    return snapshots


def print_header(title: str):
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)


# %%
if __name__ == "__main__":
    main()
