"""Per-team aggregates and rating rows."""

from dataclasses import dataclass


@dataclass
class TeamAggregate:
    """Scouted production folded across every entry for one team."""

    team_id: int
    matches_played: int = 0
    raw_auto_sum: float = 0.0
    raw_teleop_sum: float = 0.0
    scaled_auto_sum: float = 0.0
    scaled_teleop_sum: float = 0.0
    fuel_data_match_count: int = 0
    pass_sum: float = 0.0
    pass_data_match_count: int = 0
    schedule_strength_sum: float = 0.0
    schedule_strength_count: int = 0

    @property
    def has_scaled_data(self) -> bool:
        return self.fuel_data_match_count > 0

    @property
    def has_passing_data(self) -> bool:
        return self.pass_data_match_count > 0

    @property
    def average_schedule_strength(self):
        if self.schedule_strength_count == 0:
            return None
        return self.schedule_strength_sum / self.schedule_strength_count


@dataclass(frozen=True)
class TeamOPR:
    """Ridge OPR for one team; ``total_opr`` is the sum of the phase fits."""

    team_id: int
    auto_opr: float
    teleop_opr: float
    matches_played: int

    @property
    def total_opr(self) -> float:
        return self.auto_opr + self.teleop_opr

    def to_dict(self) -> dict:
        return {
            "team_id": self.team_id,
            "auto_opr": self.auto_opr,
            "teleop_opr": self.teleop_opr,
            "total_opr": self.total_opr,
            "matches_played": self.matches_played,
        }


@dataclass(frozen=True)
class ContributionRow:
    """Final ranked output row for one team."""

    team_id: int
    matches_played: int
    auto_opr: float
    teleop_opr: float
    total_opr: float
    scaled_auto_avg: float
    scaled_teleop_avg: float
    scaled_total_avg: float
    confidence_score: float
    confidence_penalty: float
    schedule_strength_penalty: float
    hybrid_scorer_index: float
    assist_impact: float
    defense_impact: float
    total_contribution_index: float
    has_scaled_data: bool = False

    def to_dict(self) -> dict:
        """Convert row to dictionary (the scaled-data flag stays internal)."""
        return {
            "team_id": self.team_id,
            "matches_played": self.matches_played,
            "auto_opr": self.auto_opr,
            "teleop_opr": self.teleop_opr,
            "total_opr": self.total_opr,
            "scaled_auto_avg": self.scaled_auto_avg,
            "scaled_teleop_avg": self.scaled_teleop_avg,
            "scaled_total_avg": self.scaled_total_avg,
            "confidence_score": self.confidence_score,
            "confidence_penalty": self.confidence_penalty,
            "schedule_strength_penalty": self.schedule_strength_penalty,
            "hybrid_scorer_index": self.hybrid_scorer_index,
            "assist_impact": self.assist_impact,
            "defense_impact": self.defense_impact,
            "total_contribution_index": self.total_contribution_index,
        }
