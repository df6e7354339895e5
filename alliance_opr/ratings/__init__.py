"""Rating components: ridge OPR, lambda selection, defense and hybrid index."""

from .defense import estimate_defense_impact
from .hybrid import compose_row, compose_rows, rank_rows
from .lambda_selection import InsufficientHoldoutError, LambdaSelection, LambdaSweep, select_lambda
from .opr import InsufficientDataError, OPRSolution, compute_opr

__all__ = [
    "InsufficientDataError",
    "InsufficientHoldoutError",
    "LambdaSelection",
    "LambdaSweep",
    "OPRSolution",
    "compose_row",
    "compose_rows",
    "compute_opr",
    "estimate_defense_impact",
    "rank_rows",
    "select_lambda",
]
