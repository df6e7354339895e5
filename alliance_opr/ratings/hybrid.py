"""
Confidence scoring and the hybrid contribution index.

The ridge OPR and the scouted (scaled) production averages are two noisy
estimates of the same quantity.  The hybrid index blends them, then shrinks
the blend by a confidence score built from four penalties:

  confidence_penalty = clamp01(0.35 * match_penalty       # fewer than 6 matches
                             + 0.25 * gap_penalty         # OPR vs. scouting disagreement
                             + 0.15 * sos_penalty         # strength of schedule
                             + 0.25 * missing_scaled)     # no scouting at all

Strength of schedule only dampens confidence; it is never rewarded.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from ..models.team import ContributionRow, TeamAggregate, TeamOPR

TARGET_MATCHES = 6
SOS_NORMALIZER = 6.0
MISSING_SCALED_PENALTY = 0.6

MATCH_WEIGHT = 0.35
GAP_WEIGHT = 0.25
SOS_WEIGHT = 0.15
MISSING_SCALED_WEIGHT = 0.25

SCALED_BLEND = 0.6
OPR_BLEND = 0.4
ASSIST_WEIGHT = 0.2
DEFENSE_WEIGHT = 0.2


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass(frozen=True)
class ConfidenceBreakdown:
    """Individual penalties behind a confidence score."""

    match_penalty: float
    gap_penalty: float
    sos_penalty: float
    missing_scaled_penalty: float

    @property
    def confidence_penalty(self) -> float:
        return clamp01(
            MATCH_WEIGHT * self.match_penalty
            + GAP_WEIGHT * self.gap_penalty
            + SOS_WEIGHT * self.sos_penalty
            + MISSING_SCALED_WEIGHT * self.missing_scaled_penalty
        )

    @property
    def confidence_score(self) -> float:
        return 1.0 - self.confidence_penalty


def match_penalty(matches_played: int) -> float:
    return max(0.0, (TARGET_MATCHES - matches_played) / TARGET_MATCHES)


def gap_penalty(total_opr: float, scaled_total_avg: float, has_scaled_data: bool) -> float:
    """Relative disagreement between OPR and scouting, 0 without scouting."""
    if not has_scaled_data:
        return 0.0
    scale = max(1.0, abs(total_opr), abs(scaled_total_avg))
    return clamp01(abs(total_opr - scaled_total_avg) / scale)


def sos_penalty(average_sos: Optional[float]) -> float:
    if average_sos is None:
        return 0.0
    return clamp01(average_sos / SOS_NORMALIZER)


def confidence_breakdown(
    matches_played: int,
    total_opr: float,
    scaled_total_avg: float,
    has_scaled_data: bool,
    average_sos: Optional[float],
) -> ConfidenceBreakdown:
    return ConfidenceBreakdown(
        match_penalty=match_penalty(matches_played),
        gap_penalty=gap_penalty(total_opr, scaled_total_avg, has_scaled_data),
        sos_penalty=sos_penalty(average_sos),
        missing_scaled_penalty=0.0 if has_scaled_data else MISSING_SCALED_PENALTY,
    )


def compose_row(
    team_id: int,
    opr: Optional[TeamOPR],
    aggregate: Optional[TeamAggregate],
    defense_impact: float = 0.0,
) -> ContributionRow:
    """
    Fuse ratings, scouting aggregates and defense into one ContributionRow.

    Args:
        team_id: Team number
        opr: Fitted OPR, or None if the team never appeared in a usable match
        aggregate: Scouting aggregate, or None if the team was never scouted
        defense_impact: Mean suppression from the defense estimator

    Returns:
        ContributionRow with every field finite
    """
    aggregate = aggregate or TeamAggregate(team_id=team_id)
    matches_played = opr.matches_played if opr else 0
    auto_opr = opr.auto_opr if opr else 0.0
    teleop_opr = opr.teleop_opr if opr else 0.0
    total_opr = auto_opr + teleop_opr

    has_scaled_data = aggregate.has_scaled_data
    if has_scaled_data:
        scaled_auto_avg = aggregate.scaled_auto_sum / aggregate.fuel_data_match_count
        scaled_teleop_avg = aggregate.scaled_teleop_sum / aggregate.fuel_data_match_count
    else:
        scaled_auto_avg = 0.0
        scaled_teleop_avg = 0.0
    scaled_total_avg = scaled_auto_avg + scaled_teleop_avg

    breakdown = confidence_breakdown(
        matches_played,
        total_opr,
        scaled_total_avg,
        has_scaled_data,
        aggregate.average_schedule_strength,
    )
    confidence = breakdown.confidence_score

    if has_scaled_data:
        hybrid = confidence * (SCALED_BLEND * scaled_total_avg + OPR_BLEND * total_opr)
    else:
        hybrid = confidence * total_opr

    assist_impact = (
        aggregate.pass_sum / aggregate.pass_data_match_count if aggregate.has_passing_data else 0.0
    )
    assist_component = ASSIST_WEIGHT * assist_impact if aggregate.has_passing_data else 0.0
    total_index = hybrid + assist_component + DEFENSE_WEIGHT * defense_impact

    return ContributionRow(
        team_id=team_id,
        matches_played=matches_played,
        auto_opr=auto_opr,
        teleop_opr=teleop_opr,
        total_opr=total_opr,
        scaled_auto_avg=scaled_auto_avg,
        scaled_teleop_avg=scaled_teleop_avg,
        scaled_total_avg=scaled_total_avg,
        confidence_score=confidence,
        confidence_penalty=breakdown.confidence_penalty,
        schedule_strength_penalty=breakdown.sos_penalty,
        hybrid_scorer_index=hybrid,
        assist_impact=assist_impact,
        defense_impact=defense_impact,
        total_contribution_index=total_index,
        has_scaled_data=has_scaled_data,
    )


def rank_rows(rows: Iterable[ContributionRow]) -> List[ContributionRow]:
    """Total index desc, then hybrid index desc, then team number asc."""
    return sorted(
        rows,
        key=lambda r: (-r.total_contribution_index, -r.hybrid_scorer_index, r.team_id),
    )


def compose_rows(
    team_ids: Iterable[int],
    oprs: Dict[int, TeamOPR],
    aggregates: Dict[int, TeamAggregate],
    defense: Dict[int, float],
) -> List[ContributionRow]:
    """Compose and rank one row per team id."""
    return rank_rows(
        compose_row(team_id, oprs.get(team_id), aggregates.get(team_id), defense.get(team_id, 0.0))
        for team_id in team_ids
    )
