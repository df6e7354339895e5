"""Defensive impact from opponents' expected vs. observed output."""

from typing import Dict, Sequence

from ..models.match import ALLIANCES, Match, opponent_of
from .opr import OPRSolution


def estimate_defense_impact(matches: Sequence[Match], solution: OPRSolution) -> Dict[int, float]:
    """
    Average per-match suppression credited to each team.

    For every match and alliance, the opponent's expected output is the sum of
    the opponents' total OPR and the suppression is ``expected - observed``.
    Suppression is split equally among the defending alliance since the model
    cannot tell which teammate actually played defense.

    Args:
        matches: The same filtered, validated matches the OPR was fitted on
        solution: Fitted OPR

    Returns:
        Dict of team_id -> mean suppression (positive = opponent held below
        expectation).  Teams without samples are absent.
    """
    sums: Dict[int, float] = {}
    samples: Dict[int, int] = {}

    for match in matches:
        for alliance in ALLIANCES:
            defenders = match.alliances[alliance]
            if not defenders:
                continue
            opponent = opponent_of(alliance)
            expected = solution.predict_alliance_total(match.alliances[opponent])
            observed = match.alliance_total(opponent)
            per_team = (expected - observed) / len(defenders)

            for team_id in defenders:
                sums[team_id] = sums.get(team_id, 0.0) + per_team
                samples[team_id] = samples.get(team_id, 0) + 1

    return {team_id: sums[team_id] / samples[team_id] for team_id in sums}
