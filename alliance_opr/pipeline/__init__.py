"""Contribution index pipeline."""

from .contribution import (
    MODE_IMPACT,
    MODE_PRODUCTION,
    ContributionConfig,
    ContributionReport,
    run_both_modes,
    run_contribution_pipeline,
)

__all__ = [
    "MODE_IMPACT",
    "MODE_PRODUCTION",
    "ContributionConfig",
    "ContributionReport",
    "run_both_modes",
    "run_contribution_pipeline",
]
