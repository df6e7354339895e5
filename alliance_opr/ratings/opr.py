"""
Ridge-regularized Offensive Power Rating (OPR).

Only alliance totals are observed, so each team's contribution is inferred
from the linear model

    alliance_total[m, a] = sum(x[t] for t in alliance a of match m) + noise

fitted separately for the auto and teleop phases.  Teams that always share
an alliance make ``AᵀA`` singular, so the fit is always ridge-regularized:

    minimize ||A x - b||² + λ ||x||²   =>   (AᵀA + λI) x = Aᵀb

``total_opr`` is the plain sum of the two phase fits, not a joint fit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
from scipy import linalg as scipy_linalg

from ..models.match import ALLIANCES, PHASES, MalformedMatchError, Match, all_team_ids
from ..models.team import TeamOPR

logger = logging.getLogger(__name__)


class InsufficientDataError(ValueError):
    """Raised when no usable match is available to fit ratings."""


@dataclass
class OPRSolution:
    """Fitted ratings for one (match set, λ, clamping mode) combination."""

    teams: Dict[int, TeamOPR]
    lam: float
    non_negative: bool
    match_count: int
    skipped_matches: List[str] = field(default_factory=list)

    def total_opr(self, team_id: int) -> float:
        """Total OPR, 0 for teams the fit never saw."""
        team = self.teams.get(team_id)
        return team.total_opr if team else 0.0

    def predict_alliance_total(self, team_ids: Iterable[int]) -> float:
        return float(sum(self.total_opr(team_id) for team_id in team_ids))

    def norm(self) -> float:
        """L2 norm of the stacked (auto, teleop) rating vector."""
        values = [v for t in self.teams.values() for v in (t.auto_opr, t.teleop_opr)]
        return float(np.linalg.norm(values)) if values else 0.0


def partition_usable(matches: Sequence[Match]) -> Tuple[List[Match], List[str]]:
    """
    Split matches into those usable for regression and keys of skipped ones.

    Malformed matches are never silently dropped: every skip is logged and
    its key returned so callers can surface the count.
    """
    usable: List[Match] = []
    skipped: List[str] = []
    for match in matches:
        try:
            match.validate()
        except MalformedMatchError as exc:
            logger.warning("Skipping match from design matrix: %s", exc)
            skipped.append(match.key)
            continue
        usable.append(match)
    return usable, skipped


def build_design_matrix(
    matches: Sequence[Match],
    team_ids: Sequence[int],
    phase: str,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build the alliance incidence matrix and observed totals for one phase.

    Args:
        matches: Validated matches
        team_ids: Column order
        phase: ``"auto"`` or ``"teleop"``

    Returns:
        Tuple of (A [2M, N], b [2M])
    """
    column = {team_id: idx for idx, team_id in enumerate(team_ids)}
    A = np.zeros((2 * len(matches), len(team_ids)))
    b = np.zeros(2 * len(matches))

    for i, match in enumerate(matches):
        for j, alliance in enumerate(ALLIANCES):
            row = 2 * i + j
            for team_id in match.alliances[alliance]:
                A[row, column[team_id]] = 1.0
            b[row] = match.phase_total(alliance, phase)

    return A, b


def ridge_solve(A: np.ndarray, b: np.ndarray, lam: float) -> np.ndarray:
    """
    Solve ``(AᵀA + λI) x = Aᵀb``.

    The normal matrix is symmetric positive definite for ``λ > 0``.  At
    ``λ = 0`` it may be singular, in which case the minimum-norm least
    squares solution is returned instead of raising.
    """
    if lam < 0:
        raise ValueError(f"Ridge lambda must be non-negative, got {lam}")

    n = A.shape[1]
    if n == 0:
        return np.zeros(0)

    AtA = A.T @ A
    Atb = A.T @ b
    if lam == 0:
        return np.linalg.lstsq(AtA, Atb, rcond=None)[0]

    reg_matrix = lam * np.eye(n)
    try:
        return scipy_linalg.solve(AtA + reg_matrix, Atb, assume_a="pos")
    except np.linalg.LinAlgError:
        return np.linalg.lstsq(AtA + reg_matrix, Atb, rcond=None)[0]


def appearance_counts(matches: Sequence[Match]) -> Dict[int, int]:
    counts: Dict[int, int] = {}
    for match in matches:
        for team_id in match.team_ids:
            counts[team_id] = counts.get(team_id, 0) + 1
    return counts


def compute_opr(
    matches: Sequence[Match],
    lam: float = 1.0,
    non_negative: bool = False,
    team_ids: Optional[Sequence[int]] = None,
) -> OPRSolution:
    """
    Fit per-phase ridge OPR.

    Args:
        matches: Matches already restricted by the playoff filter
        lam: Ridge strength (>= 0)
        non_negative: Clamp negative phase ratings to zero after solving.
            This is a post-hoc clamp, not a constrained re-solve, so the
            clamped ratings no longer minimize the ridge objective.
        team_ids: Extra teams to report (with zero rating if never seen)

    Returns:
        OPRSolution keyed by team id

    Raises:
        InsufficientDataError: if no usable match remains
    """
    if not matches:
        raise InsufficientDataError("Cannot compute OPR from an empty match list")

    usable, skipped = partition_usable(matches)
    if not usable:
        raise InsufficientDataError(
            f"No usable matches: all {len(matches)} matches were malformed"
        )

    fitted_ids = all_team_ids(usable)
    ratings = {}
    for phase in PHASES:
        A, b = build_design_matrix(usable, fitted_ids, phase)
        x = ridge_solve(A, b, lam)
        if non_negative:
            x = np.maximum(x, 0.0)
        ratings[phase] = x

    counts = appearance_counts(usable)
    teams: Dict[int, TeamOPR] = {}
    for idx, team_id in enumerate(fitted_ids):
        teams[team_id] = TeamOPR(
            team_id=team_id,
            auto_opr=float(ratings["auto"][idx]),
            teleop_opr=float(ratings["teleop"][idx]),
            matches_played=counts.get(team_id, 0),
        )

    for team_id in team_ids or ():
        if team_id not in teams:
            teams[team_id] = TeamOPR(team_id=team_id, auto_opr=0.0, teleop_opr=0.0, matches_played=0)

    return OPRSolution(
        teams=teams,
        lam=lam,
        non_negative=non_negative,
        match_count=len(usable),
        skipped_matches=skipped,
    )
