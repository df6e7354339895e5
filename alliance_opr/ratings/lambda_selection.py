"""
Ridge strength selection via chronological holdout.

Matches are ordered by play time and split into a training prefix and a
holdout suffix, so later-event dynamics never leak into the fit:

  20 matches, holdout_fraction=0.2:
    train   = [0:16]
    holdout = [16:20]

For every λ in a fixed log-spaced grid the OPR is fitted on the prefix, the
holdout alliance totals are predicted from the fitted total OPRs, and the λ
with the lowest holdout RMSE wins.  No randomness is involved anywhere.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import mean_squared_error

from ..models.match import ALLIANCES, Match, sort_chronologically
from .opr import compute_opr, partition_usable

logger = logging.getLogger(__name__)

DEFAULT_LAMBDA_GRID: Tuple[float, ...] = (0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 25.0, 50.0, 100.0, 250.0)
DEFAULT_FALLBACK_LAMBDA = 10.0
DEFAULT_HOLDOUT_FRACTION = 0.2

MODE_HOLDOUT = "holdout-validated"
MODE_INSUFFICIENT_HOLDOUT = "insufficient-holdout"


class InsufficientHoldoutError(ValueError):
    """Raised internally when the chronological split leaves nothing to score."""


@dataclass(frozen=True)
class LambdaSweepRow:
    """Holdout error for one candidate λ (diagnostic only)."""

    lam: float
    holdout_rmse: float


@dataclass
class LambdaSweep:
    """Full sweep table from the most recent selection."""

    train_match_count: int
    holdout_match_count: int
    rows: List[LambdaSweepRow] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "train_match_count": self.train_match_count,
            "holdout_match_count": self.holdout_match_count,
            "rows": [{"lambda": r.lam, "holdout_rmse": r.holdout_rmse} for r in self.rows],
        }

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [{"lambda": r.lam, "holdout_rmse": r.holdout_rmse} for r in self.rows],
            columns=["lambda", "holdout_rmse"],
        )


@dataclass
class LambdaSelection:
    """Outcome of a λ selection run."""

    selected_lambda: float
    mode: str
    sweep: LambdaSweep


def chronological_split(
    matches: Sequence[Match],
    holdout_fraction: float = DEFAULT_HOLDOUT_FRACTION,
    min_holdout_matches: int = 1,
) -> Tuple[List[Match], List[Match]]:
    """
    Split matches into a chronological training prefix and holdout suffix.

    Raises:
        InsufficientHoldoutError: if either side of the split would be empty
            or the holdout is smaller than ``min_holdout_matches``
    """
    ordered = sort_chronologically(matches)
    holdout_size = int(len(ordered) * holdout_fraction)
    train_size = len(ordered) - holdout_size

    if holdout_size < max(1, min_holdout_matches) or train_size < 1:
        raise InsufficientHoldoutError(
            f"{len(ordered)} matches leave a holdout of {holdout_size} "
            f"(need {max(1, min_holdout_matches)}) and a training set of {train_size}"
        )

    return ordered[:train_size], ordered[train_size:]


def holdout_rmse(train: Sequence[Match], holdout: Sequence[Match], lam: float, non_negative: bool) -> float:
    """RMSE of predicted vs. observed alliance totals on the holdout."""
    solution = compute_opr(train, lam=lam, non_negative=non_negative)

    predicted = []
    actual = []
    for match in holdout:
        for alliance in ALLIANCES:
            predicted.append(solution.predict_alliance_total(match.alliances[alliance]))
            actual.append(match.alliance_total(alliance))

    return float(np.sqrt(mean_squared_error(actual, predicted)))


def select_lambda(
    matches: Sequence[Match],
    lambda_grid: Sequence[float] = DEFAULT_LAMBDA_GRID,
    non_negative: bool = False,
    holdout_fraction: float = DEFAULT_HOLDOUT_FRACTION,
    default_lambda: float = DEFAULT_FALLBACK_LAMBDA,
    min_holdout_matches: int = 1,
) -> LambdaSelection:
    """
    Choose the ridge λ with the lowest chronological holdout RMSE.

    Args:
        matches: Matches already restricted by the playoff filter
        lambda_grid: Candidate strengths, swept in order
        non_negative: Clamping mode used for every candidate fit
        holdout_fraction: Share of the (chronologically last) matches held out
        default_lambda: Conservative fallback when no holdout can be formed
        min_holdout_matches: Smallest acceptable holdout

    Returns:
        LambdaSelection; ties in RMSE go to the earliest grid entry
    """
    if not lambda_grid:
        raise ValueError("lambda_grid must contain at least one candidate")

    usable, _ = partition_usable(matches)

    try:
        train, holdout = chronological_split(usable, holdout_fraction, min_holdout_matches)
    except InsufficientHoldoutError as exc:
        logger.warning("Falling back to default lambda %.3f: %s", default_lambda, exc)
        return LambdaSelection(
            selected_lambda=default_lambda,
            mode=MODE_INSUFFICIENT_HOLDOUT,
            sweep=LambdaSweep(train_match_count=len(usable), holdout_match_count=0),
        )

    sweep = LambdaSweep(train_match_count=len(train), holdout_match_count=len(holdout))
    for lam in lambda_grid:
        rmse = holdout_rmse(train, holdout, lam, non_negative)
        logger.debug("lambda=%.4f holdout_rmse=%.4f", lam, rmse)
        sweep.rows.append(LambdaSweepRow(lam=float(lam), holdout_rmse=rmse))

    best = int(np.argmin([row.holdout_rmse for row in sweep.rows]))
    selected = sweep.rows[best].lam
    logger.info(
        "Selected lambda %.3f (holdout RMSE %.3f, train %d, holdout %d)",
        selected,
        sweep.rows[best].holdout_rmse,
        sweep.train_match_count,
        sweep.holdout_match_count,
    )

    return LambdaSelection(selected_lambda=selected, mode=MODE_HOLDOUT, sweep=sweep)
