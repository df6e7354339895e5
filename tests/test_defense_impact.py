"""Tests for the defense impact estimator."""

import pytest

from alliance_opr.models.match import Match
from alliance_opr.models.team import TeamOPR
from alliance_opr.ratings.defense import estimate_defense_impact
from alliance_opr.ratings.opr import OPRSolution, compute_opr


def _match(key, red, blue, red_total, blue_total):
    return Match.from_dict({
        "key": key,
        "alliances": {
            "red": {"team_keys": [f"frc{t}" for t in red]},
            "blue": {"team_keys": [f"frc{t}" for t in blue]},
        },
        "score_breakdown": {
            "red": {"autoTotal": 0, "teleopTotal": red_total},
            "blue": {"autoTotal": 0, "teleopTotal": blue_total},
        },
    })


def _solution(ratings):
    teams = {t: TeamOPR(team_id=t, auto_opr=0.0, teleop_opr=v, matches_played=1) for t, v in ratings.items()}
    return OPRSolution(teams=teams, lam=1.0, non_negative=False, match_count=1)


def test_suppression_is_split_across_defenders():
    matches = [_match("qm1", [1, 2], [3, 4], red_total=20, blue_total=30)]
    solution = _solution({1: 10.0, 2: 10.0, 3: 20.0, 4: 20.0})

    impact = estimate_defense_impact(matches, solution)

    # Blue expected 40, scored 30: red held them 10 under, 5 each.
    assert impact[1] == pytest.approx(5.0)
    assert impact[2] == pytest.approx(5.0)
    # Red expected 20, scored 20.
    assert impact[3] == pytest.approx(0.0)
    assert impact[4] == pytest.approx(0.0)


def test_over_performing_opponents_give_negative_impact():
    matches = [_match("qm1", [1, 2], [3, 4], red_total=20, blue_total=50)]
    impact = estimate_defense_impact(matches, _solution({1: 10.0, 2: 10.0, 3: 20.0, 4: 20.0}))
    assert impact[1] == pytest.approx(-5.0)


def test_impact_is_averaged_over_matches():
    matches = [
        _match("qm1", [1, 2], [3, 4], red_total=20, blue_total=30),
        _match("qm2", [1, 5], [3, 4], red_total=20, blue_total=44),
    ]
    solution = _solution({1: 10.0, 2: 10.0, 3: 20.0, 4: 20.0, 5: 10.0})
    impact = estimate_defense_impact(matches, solution)
    # Samples for team 1: +5 and -2.
    assert impact[1] == pytest.approx(1.5)
    assert impact[5] == pytest.approx(-2.0)


def test_unknown_opponents_expect_zero():
    matches = [_match("qm1", [1], [77], red_total=0, blue_total=12)]
    impact = estimate_defense_impact(matches, _solution({1: 0.0}))
    assert impact[1] == pytest.approx(-12.0)


def test_consistent_with_fitted_opr():
    matches = [
        _match("qm1", [1, 2], [3, 4], 10, 25),
        _match("qm2", [1, 3], [2, 4], 10, 25),
        _match("qm3", [1, 4], [2, 3], 5, 30),
    ]
    solution = compute_opr(matches, lam=1e-6)
    impact = estimate_defense_impact(matches, solution)
    # Perfectly explained schedule: nobody suppresses anybody.
    for value in impact.values():
        assert value == pytest.approx(0.0, abs=1e-4)
