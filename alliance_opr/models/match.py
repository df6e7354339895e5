"""Match model for alliance contribution ratings."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..data.fields import first_finite, numeric_probes, resolve_path, resolve_team_id, to_finite_number

ALLIANCES = ("red", "blue")
PHASES = ("auto", "teleop")

QUALIFYING_LEVEL = "qm"
PLAYOFF_LEVEL = "playoff"
# Generic "playoff" has no bracket position; it sorts with the first playoff round.
LEVEL_ORDER = {"qm": 0, "ef": 1, PLAYOFF_LEVEL: 1, "qf": 2, "sf": 3, "f": 4}
LEVEL_ALIASES = {
    "qualifying": QUALIFYING_LEVEL,
    "qualification": QUALIFYING_LEVEL,
    "playoffs": PLAYOFF_LEVEL,
}

_PHASE_TOTAL_PROBES = {
    "auto": numeric_probes("autoTotal", "auto_total", "autoFuelTotal", "hubScore.autoCount", "auto"),
    "teleop": numeric_probes("teleopTotal", "teleop_total", "teleopFuelTotal", "hubScore.teleopCount", "teleop"),
}


def normalize_comp_level(value) -> str:
    """Map TBA codes and long-form level names onto one vocabulary."""
    if value is None or value == "":
        return QUALIFYING_LEVEL
    level = str(value).strip().lower()
    return LEVEL_ALIASES.get(level, level)


class MalformedMatchError(ValueError):
    """Raised when a match cannot contribute rows to the design matrix."""


def opponent_of(alliance: str) -> str:
    """Return the opposing alliance color."""
    return "blue" if alliance == "red" else "red"


@dataclass(frozen=True)
class Match:
    """A single played match, as observed from official results."""

    key: str
    comp_level: str
    alliances: Dict[str, Tuple[int, ...]]
    phase_totals: Dict[str, Dict[str, Optional[float]]]
    set_number: int = 1
    match_number: int = 0
    time: Optional[float] = None
    unresolved_team_keys: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_playoff(self) -> bool:
        return self.comp_level != QUALIFYING_LEVEL

    @property
    def team_ids(self) -> List[int]:
        """All resolved team ids, red alliance first."""
        return [team for alliance in ALLIANCES for team in self.alliances.get(alliance, ())]

    def phase_total(self, alliance: str, phase: str) -> float:
        """Observed phase total; call ``validate`` first to guarantee presence."""
        value = self.phase_totals.get(alliance, {}).get(phase)
        return 0.0 if value is None else value

    def alliance_total(self, alliance: str) -> float:
        return sum(self.phase_total(alliance, phase) for phase in PHASES)

    def validate(self) -> None:
        """
        Check that the match can be used for regression.

        Raises:
            MalformedMatchError: on unresolvable team keys, an empty alliance,
                or a missing phase total.
        """
        if self.unresolved_team_keys:
            raise MalformedMatchError(
                f"match {self.key}: unresolvable team keys {', '.join(self.unresolved_team_keys)}"
            )
        for alliance in ALLIANCES:
            if not self.alliances.get(alliance):
                raise MalformedMatchError(f"match {self.key}: {alliance} alliance has no teams")
            for phase in PHASES:
                if self.phase_totals.get(alliance, {}).get(phase) is None:
                    raise MalformedMatchError(f"match {self.key}: missing {alliance} {phase} total")

    def to_dict(self) -> dict:
        """Convert match to dictionary."""
        return {
            "key": self.key,
            "comp_level": self.comp_level,
            "set_number": self.set_number,
            "match_number": self.match_number,
            "time": self.time,
            "alliances": {
                alliance: {"team_keys": [f"frc{team}" for team in self.alliances.get(alliance, ())]}
                for alliance in ALLIANCES
            },
            "score_breakdown": {
                alliance: {
                    f"{phase}Total": self.phase_totals.get(alliance, {}).get(phase)
                    for phase in PHASES
                }
                for alliance in ALLIANCES
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Match":
        """
        Create a match from a TBA-style or camelCase data-model payload.

        Parsing never raises: unresolvable team keys and missing totals are
        kept on the instance and reported by ``validate``.
        """
        alliances: Dict[str, Tuple[int, ...]] = {}
        unresolved: List[str] = []
        phase_totals: Dict[str, Dict[str, Optional[float]]] = {}

        breakdown = (
            data.get("score_breakdown") or data.get("scoreBreakdown") or data.get("observedPhaseTotals") or {}
        )
        for alliance in ALLIANCES:
            raw_keys = (
                resolve_path(data, ("alliances", alliance, "team_keys"))
                or resolve_path(data, ("alliances", alliance, "teamKeys"))
                or resolve_path(data, ("allianceTeams", alliance))
                or []
            )
            teams: List[int] = []
            for raw_key in raw_keys:
                team_id = resolve_team_id(raw_key)
                if team_id is None:
                    unresolved.append(str(raw_key))
                elif team_id not in teams:
                    teams.append(team_id)
            alliances[alliance] = tuple(teams)

            alliance_breakdown = breakdown.get(alliance) if isinstance(breakdown, dict) else None
            phase_totals[alliance] = {
                phase: first_finite(alliance_breakdown, _PHASE_TOTAL_PROBES[phase]) for phase in PHASES
            }

        return cls(
            key=str(data.get("key", "")),
            comp_level=normalize_comp_level(data.get("comp_level") or data.get("competitionLevel")),
            alliances=alliances,
            phase_totals=phase_totals,
            set_number=int(to_finite_number(data.get("set_number")) or 1),
            match_number=int(to_finite_number(data.get("match_number")) or 0),
            time=to_finite_number(data.get("actual_time") or data.get("time")),
            unresolved_team_keys=tuple(unresolved),
        )


def filter_matches(matches: Sequence[Match], include_playoffs: bool = True) -> List[Match]:
    """Apply the playoff filter shared by every rating component."""
    return [m for m in matches if include_playoffs or not m.is_playoff]


def sort_chronologically(matches: Sequence[Match]) -> List[Match]:
    """
    Order matches by play time.

    Uses ``time`` when every match carries one; otherwise falls back to the
    schedule position ``(level, set, match number)``.  Both sorts are stable,
    so ties keep their input order.
    """
    if matches and all(m.time is not None for m in matches):
        return sorted(matches, key=lambda m: m.time)
    return sorted(
        matches,
        key=lambda m: (LEVEL_ORDER.get(m.comp_level, len(LEVEL_ORDER)), m.set_number, m.match_number),
    )


def all_team_ids(matches: Sequence[Match]) -> List[int]:
    """Every team appearing in any alliance, ascending."""
    return sorted({team for match in matches for team in match.team_ids})
