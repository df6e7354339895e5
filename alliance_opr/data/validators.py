"""Schema validators for match and scouting entry payloads."""

from __future__ import annotations

from typing import Dict, List

from .fields import resolve_path, resolve_team_id, to_finite_number
from ..models.match import ALLIANCES, LEVEL_ORDER, normalize_comp_level


def validate_matches_payload(payload: Dict) -> List[str]:
    errors: List[str] = []
    matches = payload.get("matches")
    if not isinstance(matches, list) or not matches:
        return ["matches payload must include non-empty 'matches' list"]

    seen_keys = set()
    for idx, row in enumerate(matches):
        if not isinstance(row, dict):
            errors.append(f"matches[{idx}] must be an object")
            continue

        key = row.get("key")
        if not key:
            errors.append(f"matches[{idx}] missing match key")
        elif key in seen_keys:
            errors.append(f"matches[{idx}] duplicate match key '{key}'")
        else:
            seen_keys.add(key)

        level = row.get("comp_level") or row.get("competitionLevel")
        if level is not None and normalize_comp_level(level) not in LEVEL_ORDER:
            errors.append(f"matches[{idx}] unknown comp_level '{level}'")

        for alliance in ALLIANCES:
            team_keys = (
                resolve_path(row, ("alliances", alliance, "team_keys"))
                or resolve_path(row, ("alliances", alliance, "teamKeys"))
                or resolve_path(row, ("allianceTeams", alliance))
            )
            if not isinstance(team_keys, list) or not team_keys:
                errors.append(f"matches[{idx}] missing {alliance} alliance team keys")
                continue
            bad = [str(k) for k in team_keys if resolve_team_id(k) is None]
            if bad:
                errors.append(f"matches[{idx}] unresolvable {alliance} team keys: {', '.join(bad)}")

        breakdown = row.get("score_breakdown") or row.get("scoreBreakdown") or row.get("observedPhaseTotals")
        if not isinstance(breakdown, dict):
            errors.append(f"matches[{idx}] missing score breakdown")
    return errors


def validate_entries_payload(payload: Dict) -> List[str]:
    errors: List[str] = []
    entries = payload.get("entries")
    if not isinstance(entries, list):
        return ["entries payload must include an 'entries' list"]

    for idx, row in enumerate(entries):
        if not isinstance(row, dict):
            errors.append(f"entries[{idx}] must be an object")
            continue
        team = row.get("teamNumber") or row.get("team_number") or row.get("teamKey")
        if resolve_team_id(team) is None:
            errors.append(f"entries[{idx}] missing/invalid team number")
        game_data = row.get("gameData")
        if game_data is not None and not isinstance(game_data, dict):
            errors.append(f"entries[{idx}] gameData must be an object")
            continue
        scaled = (game_data or {}).get("scaledMetrics")
        if isinstance(scaled, dict):
            for name in ("scaledAutoFuel", "scaledTeleopFuel"):
                if name in scaled and to_finite_number(scaled[name]) is None:
                    errors.append(f"entries[{idx}] scaledMetrics.{name} is not numeric")
    return errors
