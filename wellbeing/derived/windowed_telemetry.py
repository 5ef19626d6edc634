"""
Purpose: Aggregate telemetry to per-player features in the pre-survey window
Date: 2026-10-19

For player p with survey timestamp T_p an event at time t counts iff

    T_p - 14 days <= t < T_p

Events at or after the survey moment are excluded (the respondent could not
have recalled them). The survey timestamp reaches each telemetry row through a
left join on player_id, so players who never answered the survey have no
timestamp and never contribute.

OUTPUT VARIABLES (one row per player, missing = no qualifying events):
    hours: Sum of reconciled session durations; both start and end must be in
        the window, sessions crossing either bound are dropped whole
    n_sessions: Number of reconciled sessions in the window
    n_logins: Authentications (ea)
    n_characters: Distinct characters played (ea)
    n_gestures: Gestures used (ea)
    n_levelups: Level-up events (ea)
    n_prestige: Prestige changes (ea)
    xp: Sum of experience points granted (ea)
    n_friends: Distinct friends added plus distinct players who added them (ea)
"""

from functools import reduce
from typing import Dict, List

import pandas as pd

from wellbeing.study_data import (
    PLAYER_ID,
    SESSION_END,
    SESSION_START,
    SURVEY_TIME,
    WINDOW_DAYS,
    EventSource,
    PlatformStudy,
    require_columns,
)


# =====
# Window predicate
# =====
def attach_survey_time(events: pd.DataFrame, survey: pd.DataFrame) -> pd.DataFrame:
    """Left-join each player's survey timestamp onto telemetry rows."""
    require_columns(events, [PLAYER_ID], "telemetry")
    require_columns(survey, [PLAYER_ID, SURVEY_TIME], "survey")
    return events.merge(survey[[PLAYER_ID, SURVEY_TIME]], on=PLAYER_ID, how="left")


def in_window(timestamps: pd.Series, survey_time: pd.Series, days: int = WINDOW_DAYS) -> pd.Series:
    """True where survey_time - days <= timestamp < survey_time.

    Missing timestamps or survey times compare False and drop out.
    """
    window_start = survey_time - pd.Timedelta(days=days)
    return (timestamps >= window_start) & (timestamps < survey_time)


def filter_to_window(
    events: pd.DataFrame,
    survey: pd.DataFrame,
    timestamp_cols: List[str],
    days: int = WINDOW_DAYS,
) -> pd.DataFrame:
    """Keep telemetry rows whose timestamps all fall in the player's window."""
    require_columns(events, [PLAYER_ID] + timestamp_cols, "telemetry")
    joined = attach_survey_time(events, survey)
    mask = pd.Series(True, index=joined.index)
    for col in timestamp_cols:
        mask &= in_window(joined[col], joined[SURVEY_TIME], days)
    return joined[mask]


# =====
# Per-source aggregation
# =====
def aggregate_sessions(
    sessions: pd.DataFrame,
    survey: pd.DataFrame,
    days: int = WINDOW_DAYS,
) -> pd.DataFrame:
    """Hours played and session count from reconciled sessions with durations."""
    require_columns(sessions, ["duration_hours"], "sessions")
    windowed = filter_to_window(sessions, survey, [SESSION_START, SESSION_END], days)
    grouped = windowed.groupby(PLAYER_ID)
    return pd.DataFrame({
        "hours": grouped["duration_hours"].sum(min_count=1),
        "n_sessions": grouped.size(),
    }).reset_index()


def aggregate_events(
    events: pd.DataFrame,
    survey: pd.DataFrame,
    source: EventSource,
    days: int = WINDOW_DAYS,
) -> pd.DataFrame:
    """Fold one event table to a single per-player value."""
    require_columns(events, source.required_columns, source.table)
    windowed = filter_to_window(events, survey, [source.timestamp_col], days)
    grouped = windowed.groupby(PLAYER_ID)

    if source.how == "count":
        values = grouped.size()
    elif source.how == "sum":
        values = grouped[source.value_col].sum(min_count=1)
    elif source.how == "distinct":
        values = grouped[source.value_col].nunique()
    else:
        raise ValueError(f"Unknown aggregation '{source.how}' for {source.table}")

    return values.rename(source.output_col).reset_index()


def count_friends(
    friends: pd.DataFrame,
    survey: pd.DataFrame,
    days: int = WINDOW_DAYS,
) -> pd.DataFrame:
    """Distinct friends added by each player plus distinct players who added them.

    Each direction is windowed against the survey time of the player being
    counted. A player seen in only one direction gets 0 for the other before
    the sum.
    """
    require_columns(friends, [PLAYER_ID, "friend_id", "friend_time"], "friends")

    sent = filter_to_window(friends, survey, ["friend_time"], days)
    n_sent = sent.groupby(PLAYER_ID)["friend_id"].nunique().rename("n_friends_sent")

    incoming = friends.rename(columns={PLAYER_ID: "added_by", "friend_id": PLAYER_ID})
    received = filter_to_window(incoming, survey, ["friend_time"], days)
    n_received = received.groupby(PLAYER_ID)["added_by"].nunique().rename("n_friends_received")

    counts = pd.concat([n_sent, n_received], axis=1).fillna(0)
    counts["n_friends"] = counts["n_friends_sent"] + counts["n_friends_received"]
    counts.index.name = PLAYER_ID
    return counts[["n_friends"]].reset_index()


# =====
# Summary assembly
# =====
def build_windowed_summary(
    survey: pd.DataFrame,
    sessions: pd.DataFrame,
    tables: Dict[str, pd.DataFrame],
    study: PlatformStudy,
    days: int = WINDOW_DAYS,
) -> pd.DataFrame:
    """One row per player with at least one qualifying event in any source."""
    parts = [aggregate_sessions(sessions, survey, days)]
    for source in study.event_sources:
        parts.append(aggregate_events(tables[source.table], survey, source, days))
    if study.has_friends:
        parts.append(count_friends(tables["friends"], survey, days))

    summary = reduce(
        lambda left, right: left.merge(right, on=PLAYER_ID, how="outer"),
        parts,
    )
    return summary[[PLAYER_ID] + study.feature_columns]


def join_to_survey(survey: pd.DataFrame, summary: pd.DataFrame) -> pd.DataFrame:
    """Left-join windowed features onto every survey respondent."""
    merged = survey.merge(summary, on=PLAYER_ID, how="left")
    if len(merged) != len(survey):
        raise ValueError(
            f"Feature join changed row count: {len(survey)} -> {len(merged)}"
        )
    return merged


def print_summary(summary: pd.DataFrame, survey: pd.DataFrame, study: PlatformStudy):
    """Print telemetry coverage of the survey population."""
    print(f"    Players with windowed telemetry: {len(summary)} of {len(survey)} respondents")
    for col in study.feature_columns:
        n_present = int(summary[col].notna().sum())
        print(f"      {col}: {n_present} players")
