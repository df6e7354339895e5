"""End-to-end tests for the contribution index pipeline."""

import copy
import math
from concurrent.futures import ThreadPoolExecutor
from collections import Counter

import numpy as np
import pytest

from alliance_opr import (
    ContributionConfig,
    InsufficientDataError,
    Match,
    run_both_modes,
    run_contribution_pipeline,
)
from alliance_opr.ratings.lambda_selection import MODE_HOLDOUT, MODE_INSUFFICIENT_HOLDOUT


def _payload(key, red, blue, red_auto, red_teleop, blue_auto, blue_teleop, comp_level="qm", number=0):
    return {
        "key": key,
        "comp_level": comp_level,
        "match_number": number,
        "alliances": {
            "red": {"team_keys": [f"frc{t}" for t in red]},
            "blue": {"team_keys": [f"frc{t}" for t in blue]},
        },
        "score_breakdown": {
            "red": {"autoTotal": red_auto, "teleopTotal": red_teleop},
            "blue": {"autoTotal": blue_auto, "teleopTotal": blue_teleop},
        },
    }


def _build_event(n_matches=24, n_teams=12, seed=2026):
    """Qualification schedule generated from known per-team contributions."""
    rng = np.random.default_rng(seed)
    auto = {t: 0.5 * t for t in range(1, n_teams + 1)}
    teleop = {t: 2.0 * t for t in range(1, n_teams + 1)}

    matches = []
    for i in range(n_matches):
        teams = [int(t) + 1 for t in rng.permutation(n_teams)[:6]]
        red, blue = teams[:3], teams[3:]
        noise = rng.normal(0, 1.5, size=2)
        matches.append(Match.from_dict(_payload(
            f"2026test_qm{i + 1}", red, blue,
            sum(auto[t] for t in red), sum(teleop[t] for t in red) + noise[0],
            sum(auto[t] for t in blue), sum(teleop[t] for t in blue) + noise[1],
            number=i + 1,
        )))
    return matches


def _entries(team_ids, per_team=3):
    entries = []
    for team in team_ids:
        for n in range(per_team):
            entries.append({
                "teamNumber": team,
                "matchKey": f"qm{n + 1}",
                "gameData": {
                    "auto": {"fuelScoredCount": 0.5 * team},
                    "teleop": {"fuelScoredCount": 2.0 * team + n},
                    "teleopFuelPassed": 1 + (team % 3),
                    "sos": 2.0,
                },
            })
    return entries


class TestRowCoverage:
    def test_every_team_exactly_once(self):
        matches = _build_event()
        report = run_contribution_pipeline(matches, _entries([1, 2, 3]))
        team_ids = [row.team_id for row in report.rows]
        assert len(team_ids) == len(set(team_ids))
        assert set(team_ids) == {t for m in matches for t in m.team_ids}

    def test_playoff_only_team_kept_with_zero_matches(self):
        matches = _build_event()
        playoff = Match.from_dict(_payload("2026test_sf1m1", [1, 2, 99], [4, 5, 6], 3, 30, 3, 30, comp_level="sf"))
        report = run_contribution_pipeline(
            matches + [playoff], config=ContributionConfig(include_playoffs=False)
        )
        row = report.row_for(99)
        assert row is not None
        assert row.matches_played == 0
        assert row.total_opr == 0.0
        assert row.confidence_score == pytest.approx(0.5)
        assert row.total_contribution_index == 0.0

    def test_entry_only_team_gets_a_row(self):
        report = run_contribution_pipeline(_build_event(), _entries([555]))
        row = report.row_for(555)
        assert row is not None
        assert row.matches_played == 0
        assert row.has_scaled_data
        assert row.scaled_total_avg > 0

    def test_malformed_match_surfaced_and_its_teams_kept(self):
        matches = _build_event()
        broken = _payload("2026test_qm99", [1, 2, 77], [4, 5, 6], 1, 1, 1, 1, number=99)
        broken["score_breakdown"]["blue"] = {}
        report = run_contribution_pipeline(matches + [Match.from_dict(broken)])
        assert report.skipped_matches == ["2026test_qm99"]
        assert report.diagnostics["skipped_match_count"] == 1
        assert report.row_for(77).matches_played == 0


class TestMatchCounts:
    def test_matches_played_equals_alliance_tally(self):
        matches = _build_event()
        manual = Counter(t for m in matches for t in m.team_ids)
        for non_negative in (False, True):
            report = run_contribution_pipeline(matches, config=ContributionConfig(non_negative=non_negative))
            assert {r.team_id: r.matches_played for r in report.rows} == dict(manual)

    def test_playoff_filter_applies_to_counts(self):
        matches = _build_event()
        playoff = Match.from_dict(_payload("2026test_f1m1", [1, 2, 3], [4, 5, 6], 3, 30, 3, 30, comp_level="f"))
        with_playoffs = run_contribution_pipeline(matches + [playoff])
        without = run_contribution_pipeline(matches + [playoff], config=ContributionConfig(include_playoffs=False))
        assert with_playoffs.row_for(1).matches_played == without.row_for(1).matches_played + 1
        assert with_playoffs.match_count == without.match_count + 1


class TestOutputs:
    def test_bounds_and_finiteness(self):
        report = run_contribution_pipeline(_build_event(), _entries([1, 5, 9, 40]))
        for row in report.rows:
            assert 0.0 <= row.confidence_score <= 1.0
            assert row.confidence_penalty == pytest.approx(1.0 - row.confidence_score)
            assert all(math.isfinite(v) for v in row.to_dict().values())

    def test_rows_are_ranked(self):
        report = run_contribution_pipeline(_build_event(), _entries([2, 4, 6]))
        keys = [(-r.total_contribution_index, -r.hybrid_scorer_index, r.team_id) for r in report.rows]
        assert keys == sorted(keys)

    def test_strong_teams_rank_high(self):
        report = run_contribution_pipeline(_build_event(n_matches=40))
        top = [row.team_id for row in report.rows[:3]]
        assert set(top) <= {8, 9, 10, 11, 12}

    def test_production_mode_non_negative(self):
        report = run_contribution_pipeline(_build_event(), config=ContributionConfig(non_negative=True))
        assert all(row.total_opr >= 0 for row in report.rows)
        assert report.non_negative

    def test_repeated_runs_identical(self):
        matches = _build_event()
        entries = _entries([1, 2])
        first = run_contribution_pipeline(matches, entries)
        second = run_contribution_pipeline(matches, entries)
        assert first.to_dict() == second.to_dict()

    def test_diagnostics_expose_sweep(self):
        report = run_contribution_pipeline(_build_event(), config=ContributionConfig(lambda_grid=(1.0, 10.0)))
        assert report.mode == MODE_HOLDOUT
        assert report.selected_lambda in (1.0, 10.0)
        sweep = report.diagnostics["latest_sweep"]
        assert [row["lambda"] for row in sweep["rows"]] == [1.0, 10.0]
        assert sweep["holdout_match_count"] > 0

    def test_small_event_flags_insufficient_holdout(self):
        report = run_contribution_pipeline(_build_event(n_matches=3), config=ContributionConfig(default_lambda=20.0))
        assert report.mode == MODE_INSUFFICIENT_HOLDOUT
        assert report.selected_lambda == 20.0

    def test_to_frame_indexed_by_team(self):
        report = run_contribution_pipeline(_build_event())
        frame = report.to_frame()
        assert frame.index.name == "team_id"
        assert len(frame) == len(report.rows)
        assert "total_contribution_index" in frame.columns


class TestErrors:
    def test_empty_corpus(self):
        with pytest.raises(InsufficientDataError):
            run_contribution_pipeline([], [])

    def test_everything_filtered_out(self):
        playoff = Match.from_dict(_payload("sf1m1", [1, 2, 3], [4, 5, 6], 3, 30, 3, 30, comp_level="sf"))
        with pytest.raises(InsufficientDataError, match="No usable matches"):
            run_contribution_pipeline([playoff], config=ContributionConfig(include_playoffs=False))

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"lambda_grid": ()},
            {"lambda_grid": (1.0, -2.0)},
            {"default_lambda": 0.0},
            {"holdout_fraction": 1.0},
            {"min_holdout_matches": 0},
        ],
    )
    def test_invalid_config(self, kwargs):
        with pytest.raises(ValueError):
            ContributionConfig(**kwargs)


def test_run_both_modes():
    reports = run_both_modes(_build_event(), _entries([3]))
    assert set(reports) == {"impact", "production"}
    assert not reports["impact"].non_negative
    assert reports["production"].non_negative
    assert {r.team_id for r in reports["impact"].rows} == {r.team_id for r in reports["production"].rows}


def test_concurrent_modes_match_sequential_runs():
    matches = _build_event()
    entries = _entries([1, 4, 7, 555])
    matches_before = copy.deepcopy(matches)
    entries_before = copy.deepcopy(entries)
    configs = {
        "impact": ContributionConfig(),
        "production": ContributionConfig(non_negative=True),
    }
    sequential = {
        name: run_contribution_pipeline(matches, entries, config).to_dict() for name, config in configs.items()
    }

    with ThreadPoolExecutor(max_workers=4) as pool:
        futures = {
            (name, i): pool.submit(run_contribution_pipeline, matches, entries, config)
            for name, config in configs.items()
            for i in range(4)
        }
        results = {key: future.result().to_dict() for key, future in futures.items()}

    for (name, _), result in results.items():
        assert result == sequential[name]
    assert matches == matches_before
    assert entries == entries_before


def test_long_form_qualifying_levels_survive_playoff_filter():
    matches = [
        Match.from_dict({
            "key": f"q{i}",
            "competitionLevel": "qualifying",
            "allianceTeams": {"red": [1, 2, 3], "blue": [4, 5, 6]},
            "observedPhaseTotals": {
                "red": {"auto": 5 + i, "teleop": 30},
                "blue": {"auto": 4, "teleop": 22 + i},
            },
        })
        for i in range(5)
    ]
    playoff = Match.from_dict({
        "key": "p1",
        "competitionLevel": "playoff",
        "allianceTeams": {"red": [1, 2, 3], "blue": [4, 5, 6]},
        "observedPhaseTotals": {"red": {"auto": 9, "teleop": 40}, "blue": {"auto": 9, "teleop": 40}},
    })
    report = run_contribution_pipeline(matches + [playoff], config=ContributionConfig(include_playoffs=False))
    assert report.match_count == 5
    assert report.skipped_matches == []
    assert report.row_for(1).matches_played == 5
