"""End-to-end contribution index computation.

``run_contribution_pipeline`` is a pure function of
``(matches, entries, config)``: every call builds its own design matrices and
aggregates, so concurrent calls with different configs never share state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from ..data.entries import aggregate_entries
from ..models.match import Match, all_team_ids, filter_matches
from ..models.team import ContributionRow
from ..ratings.defense import estimate_defense_impact
from ..ratings.hybrid import compose_rows
from ..ratings.lambda_selection import (
    DEFAULT_FALLBACK_LAMBDA,
    DEFAULT_HOLDOUT_FRACTION,
    DEFAULT_LAMBDA_GRID,
    LambdaSweep,
    select_lambda,
)
from ..ratings.opr import InsufficientDataError, compute_opr, partition_usable

logger = logging.getLogger(__name__)

MODE_IMPACT = "impact"
MODE_PRODUCTION = "production"


@dataclass(frozen=True)
class ContributionConfig:
    """Options for one contribution index run."""

    include_playoffs: bool = True
    # Production mode clamps negative OPR to zero; impact mode keeps the sign.
    non_negative: bool = False
    lambda_grid: Tuple[float, ...] = DEFAULT_LAMBDA_GRID
    default_lambda: float = DEFAULT_FALLBACK_LAMBDA
    holdout_fraction: float = DEFAULT_HOLDOUT_FRACTION
    min_holdout_matches: int = 1

    def __post_init__(self):
        if not self.lambda_grid:
            raise ValueError("lambda_grid must contain at least one candidate")
        if any(lam < 0 for lam in self.lambda_grid):
            raise ValueError(f"lambda_grid values must be non-negative, got {self.lambda_grid}")
        if self.default_lambda <= 0:
            raise ValueError(f"default_lambda must be positive, got {self.default_lambda}")
        if not 0.0 <= self.holdout_fraction < 1.0:
            raise ValueError(f"holdout_fraction must be in [0, 1), got {self.holdout_fraction}")
        if self.min_holdout_matches < 1:
            raise ValueError(f"min_holdout_matches must be >= 1, got {self.min_holdout_matches}")

    @property
    def mode_name(self) -> str:
        return MODE_PRODUCTION if self.non_negative else MODE_IMPACT


@dataclass
class ContributionReport:
    """Ranked rows plus every fallback the engine took to produce them."""

    rows: List[ContributionRow]
    selected_lambda: float
    mode: str
    latest_sweep: LambdaSweep
    non_negative: bool
    include_playoffs: bool
    match_count: int
    skipped_matches: List[str] = field(default_factory=list)
    skipped_entries: int = 0

    def row_for(self, team_id: int) -> Optional[ContributionRow]:
        return next((row for row in self.rows if row.team_id == team_id), None)

    @property
    def diagnostics(self) -> dict:
        return {
            "selected_lambda": self.selected_lambda,
            "mode": self.mode,
            "latest_sweep": self.latest_sweep.to_dict(),
            "non_negative": self.non_negative,
            "include_playoffs": self.include_playoffs,
            "match_count": self.match_count,
            "skipped_matches": list(self.skipped_matches),
            "skipped_match_count": len(self.skipped_matches),
            "skipped_entries": self.skipped_entries,
        }

    def to_dict(self) -> dict:
        return {
            "rows": [row.to_dict() for row in self.rows],
            "diagnostics": self.diagnostics,
        }

    def to_frame(self) -> pd.DataFrame:
        """Rows as a DataFrame in ranked order."""
        frame = pd.DataFrame([row.to_dict() for row in self.rows])
        if frame.empty:
            return frame
        return frame.set_index("team_id")


def run_contribution_pipeline(
    matches: Sequence[Match],
    entries: Iterable[Mapping] = (),
    config: Optional[ContributionConfig] = None,
) -> ContributionReport:
    """
    Compute the ranked contribution index.

    Args:
        matches: Match corpus (read-only snapshot)
        entries: Scouting entry dicts
        config: Run options; defaults to impact mode with playoffs included

    Returns:
        ContributionReport with one row per team seen in any alliance or entry

    Raises:
        InsufficientDataError: if the corpus is empty, or nothing usable
            remains after the playoff filter and malformed-match skips
    """
    config = config or ContributionConfig()
    if not matches:
        raise InsufficientDataError("Cannot compute contribution index from an empty match list")

    filtered = filter_matches(matches, config.include_playoffs)
    usable, skipped = partition_usable(filtered)
    if not usable:
        raise InsufficientDataError(
            f"No usable matches after filtering ({len(filtered)} eligible, {len(skipped)} malformed)"
        )

    selection = select_lambda(
        usable,
        lambda_grid=config.lambda_grid,
        non_negative=config.non_negative,
        holdout_fraction=config.holdout_fraction,
        default_lambda=config.default_lambda,
        min_holdout_matches=config.min_holdout_matches,
    )
    solution = compute_opr(usable, lam=selection.selected_lambda, non_negative=config.non_negative)
    # Same usable match set as the OPR fit, so expectations share one baseline.
    defense = estimate_defense_impact(usable, solution)

    aggregates, skipped_entries = aggregate_entries(entries)
    team_ids = sorted(set(all_team_ids(matches)) | set(aggregates))
    rows = compose_rows(team_ids, solution.teams, aggregates, defense)

    logger.info(
        "%s mode: %d teams ranked from %d matches (lambda %.3f, %s, %d skipped)",
        config.mode_name,
        len(rows),
        len(usable),
        selection.selected_lambda,
        selection.mode,
        len(skipped),
    )

    return ContributionReport(
        rows=rows,
        selected_lambda=selection.selected_lambda,
        mode=selection.mode,
        latest_sweep=selection.sweep,
        non_negative=config.non_negative,
        include_playoffs=config.include_playoffs,
        match_count=len(usable),
        skipped_matches=skipped,
        skipped_entries=skipped_entries,
    )


def run_both_modes(
    matches: Sequence[Match],
    entries: Iterable[Mapping] = (),
    config: Optional[ContributionConfig] = None,
) -> Dict[str, ContributionReport]:
    """Run impact and production modes over the same snapshot."""
    config = config or ContributionConfig()
    entries = list(entries)
    reports = {}
    for mode in (MODE_IMPACT, MODE_PRODUCTION):
        mode_config = replace(config, non_negative=(mode == MODE_PRODUCTION))
        reports[mode] = run_contribution_pipeline(matches, entries, mode_config)
    return reports
