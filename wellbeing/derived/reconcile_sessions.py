"""
Purpose: Collapse telemetry session fragments into one row per logical session
Date: 2026-10-19

Game clients log a row per heartbeat/checkpoint rather than per session, so the
same (player_id, session_id) pair appears several times with progressively
later end times. All fragments sharing the pair are treated as one session:

    session_start = earliest start across fragments
    session_end   = latest end across fragments

A fragment with no start gets its own end as a placeholder start. The zero
duration this produces is not a real session length, so add_session_durations
reports it as missing.

Other columns (platform, game mode, level, ...) come from the first fragment
after a stable sort on the key and are not authoritative for multi-fragment
sessions.

session_id values can collide across players in multiplayer matches, which is
why the key always includes player_id.
"""

import numpy as np
import pandas as pd

from wellbeing.study_data import (
    PLAYER_ID,
    SESSION_END,
    SESSION_ID,
    SESSION_START,
    SESSION_COLUMNS,
    PipelineError,
    require_columns,
)

SESSION_KEY = [PLAYER_ID, SESSION_ID]


# =====
# Reconciliation
# =====
def reconcile_sessions(sessions: pd.DataFrame) -> pd.DataFrame:
    """Return one row per (player_id, session_id) with min start and max end."""
    require_columns(sessions, SESSION_COLUMNS, "sessions")
    if sessions[SESSION_END].isna().any():
        n_bad = int(sessions[SESSION_END].isna().sum())
        raise PipelineError(f"{n_bad} session fragments have no {SESSION_END}")

    df = drop_unkeyed_fragments(sessions)
    df[SESSION_START] = df[SESSION_START].fillna(df[SESSION_END])

    df = df.sort_values(SESSION_KEY, kind="mergesort").reset_index(drop=True)
    bounds = df.groupby(SESSION_KEY, sort=False).agg(
        **{SESSION_START: (SESSION_START, "min"), SESSION_END: (SESSION_END, "max")}
    )

    representative = df.drop_duplicates(subset=SESSION_KEY, keep="first")
    representative = representative.drop(columns=[SESSION_START, SESSION_END])
    reconciled = representative.merge(bounds.reset_index(), on=SESSION_KEY, how="left")

    return reconciled[list(sessions.columns)].reset_index(drop=True)


def drop_unkeyed_fragments(sessions: pd.DataFrame) -> pd.DataFrame:
    """Drop fragments that cannot be attributed to a (player, session) key."""
    unkeyed = sessions[SESSION_KEY].isna().any(axis=1)
    if unkeyed.any():
        print(f"    Warning: Dropping {int(unkeyed.sum())} session fragments "
              f"without player or session ID")
    return sessions[~unkeyed].copy()


# =====
# Durations
# =====
def add_session_durations(sessions: pd.DataFrame) -> pd.DataFrame:
    """Add duration_hours; zero-length sessions are recorded as missing."""
    df = sessions.copy()
    hours = (df[SESSION_END] - df[SESSION_START]).dt.total_seconds() / 3600
    df["duration_hours"] = hours.mask(hours == 0, np.nan)
    return df


def print_summary(raw: pd.DataFrame, reconciled: pd.DataFrame):
    """Print fragment and session counts."""
    print(f"    Fragments: {len(raw)}")
    print(f"    Sessions after reconciliation: {len(reconciled)}")
    if len(reconciled):
        print(f"    Players with sessions: {reconciled[PLAYER_ID].nunique()}")
    n_no_start = int(raw[SESSION_START].isna().sum())
    if n_no_start:
        print(f"    Fragments without start time: {n_no_start}")
