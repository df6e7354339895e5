"""Fold per-team-per-match scouting entries into team aggregates."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Tuple

from .fields import (
    first_finite,
    numeric_probes,
    resolve_team_id,
    sum_pass_actions,
)
from ..models.team import TeamAggregate

logger = logging.getLogger(__name__)

RAW_FUEL_PROBES = {
    "auto": numeric_probes("auto.fuelScoredCount", "auto.fuelScored", "autoFuelScored"),
    "teleop": numeric_probes("teleop.fuelScoredCount", "teleop.fuelScored", "teleopFuelScored"),
}

SCALED_FUEL_PROBES = {
    "auto": numeric_probes("scaledMetrics.scaledAutoFuel"),
    "teleop": numeric_probes("scaledMetrics.scaledTeleopFuel"),
}

# Each group is one logical quantity recorded under several historical names.
# Groups are summed; aliases within a group are first-finite-wins.
PASS_COMPONENT_PROBES = {
    "auto_passed": numeric_probes("auto.fuelPassedCount", "autoFuelPassed", "autoFuelPassedCount")
    + [(("autoActions",), sum_pass_actions), (("auto", "actions"), sum_pass_actions)],
    "teleop_passed": numeric_probes("teleop.fuelPassedCount", "teleopFuelPassed", "teleopFuelPassedCount")
    + [(("teleopActions",), sum_pass_actions), (("teleop", "actions"), sum_pass_actions)],
    "auto_neutral_alliance": numeric_probes(
        "auto_fuel_neutral_alliance_pass", "autoFuelNeutralAlliancePass", "auto.fuelNeutralAlliancePass"
    ),
    "auto_opponent_alliance": numeric_probes("auto.fuelOpponentAlliancePass"),
    "teleop_neutral_alliance": numeric_probes(
        "tele_fuel_neutral_alliance_pass", "teleFuelNeutralAlliancePass", "teleop.fuelNeutralAlliancePass"
    ),
    "teleop_opponent_alliance": numeric_probes(
        "tele_fuel_opponent_alliance_pass", "teleFuelOpponentAlliancePass", "teleop.fuelOpponentAlliancePass"
    ),
    "teleop_opponent_neutral": numeric_probes(
        "tele_fuel_opponent_neutral_pass", "teleFuelOpponentNeutralPass", "teleop.fuelOpponentNeutralPass"
    ),
}

# Only consulted when no per-phase component was recorded.
PASS_TOTAL_PROBES = numeric_probes("totalFuelPassed", "fuelPassed")

SCHEDULE_STRENGTH_PROBES = numeric_probes(
    "strengthOfSchedule",
    "sos",
    "statbotics.strengthOfSchedule",
    "statbotics.sos",
    "statbotics.scheduleStrength",
)

_TEAM_ID_FIELDS = ("teamNumber", "team_number", "teamKey", "team_key", "team")


@dataclass(frozen=True)
class EntryProduction:
    """Values extracted from a single scouting entry."""

    raw_auto: Optional[float]
    raw_teleop: Optional[float]
    scaled_auto: Optional[float]
    scaled_teleop: Optional[float]
    passing: Optional[float]
    schedule_strength: Optional[float]

    @property
    def has_fuel_data(self) -> bool:
        return any(
            v is not None for v in (self.raw_auto, self.raw_teleop, self.scaled_auto, self.scaled_teleop)
        )

    def phase_value(self, phase: str) -> float:
        """Scaled value for ``phase``, falling back to raw, then 0."""
        scaled = self.scaled_auto if phase == "auto" else self.scaled_teleop
        raw = self.raw_auto if phase == "auto" else self.raw_teleop
        if scaled is not None:
            return scaled
        return raw if raw is not None else 0.0


def entry_team_id(entry: Mapping) -> Optional[int]:
    for name in _TEAM_ID_FIELDS:
        team_id = resolve_team_id(entry.get(name))
        if team_id is not None:
            return team_id
    return None


def extract_passing(game_data: Mapping) -> Optional[float]:
    """Total passing activity for one entry, or ``None`` when nothing was recorded."""
    components = [first_finite(game_data, probes) for probes in PASS_COMPONENT_PROBES.values()]
    found = [value for value in components if value is not None]
    if found:
        return float(sum(found))
    return first_finite(game_data, PASS_TOTAL_PROBES)


def extract_production(entry: Mapping) -> EntryProduction:
    game_data = entry.get("gameData")
    if not isinstance(game_data, Mapping):
        game_data = {}

    return EntryProduction(
        raw_auto=first_finite(game_data, RAW_FUEL_PROBES["auto"]),
        raw_teleop=first_finite(game_data, RAW_FUEL_PROBES["teleop"]),
        scaled_auto=first_finite(game_data, SCALED_FUEL_PROBES["auto"]),
        scaled_teleop=first_finite(game_data, SCALED_FUEL_PROBES["teleop"]),
        passing=extract_passing(game_data),
        schedule_strength=first_finite(game_data, SCHEDULE_STRENGTH_PROBES),
    )


def aggregate_entries(entries: Iterable[Mapping]) -> Tuple[Dict[int, TeamAggregate], int]:
    """
    Build fresh per-team aggregates from scouting entries.

    Args:
        entries: Scouting entry dicts (``teamNumber`` + ``gameData``)

    Returns:
        Tuple of (team_id -> TeamAggregate, number of entries skipped because
        no team id could be resolved)
    """
    aggregates: Dict[int, TeamAggregate] = {}
    skipped = 0

    for entry in entries:
        if not isinstance(entry, Mapping):
            skipped += 1
            continue
        team_id = entry_team_id(entry)
        if team_id is None:
            skipped += 1
            continue

        production = extract_production(entry)
        agg = aggregates.setdefault(team_id, TeamAggregate(team_id=team_id))
        agg.matches_played += 1

        if production.has_fuel_data:
            agg.raw_auto_sum += production.raw_auto or 0.0
            agg.raw_teleop_sum += production.raw_teleop or 0.0
            agg.scaled_auto_sum += production.phase_value("auto")
            agg.scaled_teleop_sum += production.phase_value("teleop")
            agg.fuel_data_match_count += 1

        if production.passing is not None:
            agg.pass_sum += production.passing
            agg.pass_data_match_count += 1

        if production.schedule_strength is not None:
            agg.schedule_strength_sum += production.schedule_strength
            agg.schedule_strength_count += 1

    if skipped:
        logger.warning("Skipped %d scouting entries with no resolvable team number", skipped)

    return aggregates, skipped

