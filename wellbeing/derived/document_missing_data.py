"""
Purpose: Generate missing data report for the built study datasets
Date: 2026-10-19

Separates respondents without telemetry (missing feature) from respondents
with measured zero activity, and documents how many rows and cells the
exclusion step removed. Reads the no_exclusions and exclusions snapshots.

Execute with: python -m wellbeing.derived.document_missing_data --platform all
"""

import argparse
import sys
from pathlib import Path

import pandas as pd

from wellbeing.snapshots import FORMATS, load_snapshot
from wellbeing.study_data import DERIVED_DIR, PLATFORMS, PLAYER_ID, PlatformStudy, get_platform


# =====
# Main function
# =====
def main(argv=None):
    """Generate missing data reports for the requested platforms."""
    parser = argparse.ArgumentParser(description="Document missing telemetry and exclusions")
    parser.add_argument("--platform", choices=["all"] + sorted(PLATFORMS), default="all")
    parser.add_argument("--derived-dir", default=DERIVED_DIR)
    parser.add_argument("--format", choices=FORMATS, default="csv")
    args = parser.parse_args(argv)

    names = list(PLATFORMS) if args.platform == "all" else [args.platform]
    derived_dir = Path(args.derived_dir)
    try:
        for name in names:
            study = get_platform(name)
            before = load_snapshot(name, "no_exclusions", derived_dir, args.format)
            after = load_snapshot(name, "exclusions", derived_dir, args.format)
            lines = generate_report(study, before, after)
            save_report(lines, derived_dir / "reports" / f"{name}_missing_data_report.txt")
    except Exception as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)


def generate_report(study: PlatformStudy, before: pd.DataFrame, after: pd.DataFrame) -> list[str]:
    """Generate all report sections for one platform."""
    lines = [f"MISSING DATA REPORT: {study.name}", f"Respondents: {len(before)}", ""]
    lines.extend(document_telemetry_coverage(before, study))
    lines.extend(document_exclusions(before, after))
    lines.extend(document_outlier_nulling(before, after, study))
    return lines


# =====
# Telemetry coverage
# =====
def document_telemetry_coverage(df: pd.DataFrame, study: PlatformStudy) -> list[str]:
    """Count missing, zero and positive values for every telemetry feature."""
    lines = section("1. TELEMETRY COVERAGE")

    coverage = coverage_table(df, study.feature_columns)
    lines.append(coverage.to_string())

    no_telemetry = df[study.feature_columns].isna().all(axis=1)
    lines.append(
        f"\nRespondents with no windowed telemetry at all: {int(no_telemetry.sum())} "
        f"({100 * no_telemetry.mean():.1f}%)"
    )
    print("\n".join(lines))
    return lines


def coverage_table(df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
    """Missing (no telemetry) vs zero vs positive counts per feature."""
    rows = []
    for col in columns:
        values = df[col]
        rows.append({
            "feature": col,
            "n_missing": int(values.isna().sum()),
            "n_zero": int((values == 0).sum()),
            "n_positive": int((values > 0).sum()),
            "pct_missing": round(100 * values.isna().mean(), 1) if len(values) else 0.0,
        })
    return pd.DataFrame(rows).set_index("feature")


# =====
# Exclusions
# =====
def document_exclusions(before: pd.DataFrame, after: pd.DataFrame) -> list[str]:
    """Document straightliner flags and dropped respondents."""
    lines = section("2. STRAIGHTLINING EXCLUSIONS")
    for flag_col in ["straightliner_affect", "straightliner_motivation"]:
        flags = before[flag_col]
        n_true = int(flags.eq(True).sum())
        n_missing = int(flags.isna().sum())
        lines.append(f"  {flag_col}: {n_true} flagged, {n_missing} not assessable")

    dropped = sorted(set(before[PLAYER_ID].astype(str)) - set(after[PLAYER_ID].astype(str)))
    lines.append(f"\nRespondents dropped (flagged on both blocks): {len(dropped)}")
    print("\n".join(lines))
    return lines


def document_outlier_nulling(before: pd.DataFrame, after: pd.DataFrame, study: PlatformStudy) -> list[str]:
    """Count cells nulled as outliers, comparing retained respondents only."""
    lines = section("3. OUTLIER NULLING")
    kept = before[before[PLAYER_ID].astype(str).isin(after[PLAYER_ID].astype(str))]
    kept = kept.set_index(kept[PLAYER_ID].astype(str))
    cleaned = after.set_index(after[PLAYER_ID].astype(str))

    for col in study.outlier_columns:
        nulled = kept[col].notna() & cleaned[col].reindex(kept.index).isna()
        lines.append(f"  {col}: {int(nulled.sum())} values nulled")
    print("\n".join(lines))
    return lines


# =====
# Output functions
# =====
def section(title: str) -> list[str]:
    return ["", "=" * 60, title, "=" * 60, ""]


def save_report(report_lines: list[str], output_path: Path):
    """Save report to text file."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write("\n".join(report_lines))
    print(f"\n{'=' * 60}\nReport saved to: {output_path}")


# %%
if __name__ == "__main__":
    main()
