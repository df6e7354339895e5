"""Alliance contribution ratings: ridge OPR, defense impact and a hybrid index."""

from .models.match import MalformedMatchError, Match
from .models.team import ContributionRow, TeamAggregate, TeamOPR
from .pipeline.contribution import (
    ContributionConfig,
    ContributionReport,
    run_both_modes,
    run_contribution_pipeline,
)
from .ratings.lambda_selection import InsufficientHoldoutError
from .ratings.opr import InsufficientDataError

__all__ = [
    "ContributionConfig",
    "ContributionReport",
    "ContributionRow",
    "InsufficientDataError",
    "InsufficientHoldoutError",
    "MalformedMatchError",
    "Match",
    "TeamAggregate",
    "TeamOPR",
    "run_both_modes",
    "run_contribution_pipeline",
]
