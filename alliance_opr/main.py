"""Main CLI interface for alliance contribution ratings."""

import argparse
import logging
import sys

from .data.loader import DataLoader
from .data.validators import validate_entries_payload, validate_matches_payload
from .pipeline.contribution import (
    MODE_IMPACT,
    MODE_PRODUCTION,
    ContributionConfig,
    ContributionReport,
    run_both_modes,
    run_contribution_pipeline,
)
from .ratings.lambda_selection import DEFAULT_FALLBACK_LAMBDA, DEFAULT_HOLDOUT_FRACTION, DEFAULT_LAMBDA_GRID
from .ratings.opr import InsufficientDataError


def parse_lambda_grid(value):
    """Parse a comma-separated λ grid; ``None`` keeps the default grid."""
    if value is None:
        return DEFAULT_LAMBDA_GRID
    parts = [p.strip() for p in value.split(",") if p.strip()]
    if not parts:
        return DEFAULT_LAMBDA_GRID
    try:
        return tuple(float(p) for p in parts)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid lambda grid: {value}")


def print_report(report: ContributionReport, label: str, top: int):
    print(f"\n{'='*60}")
    print(f"CONTRIBUTION INDEX - {label.upper()}")
    print(f"{'='*60}\n")
    print(f"Ridge lambda: {report.selected_lambda:.3f} ({report.mode})")
    print(f"Matches used: {report.match_count}")
    if report.skipped_matches:
        print(f"⚠ Skipped {len(report.skipped_matches)} malformed matches: {', '.join(report.skipped_matches)}")
    if report.skipped_entries:
        print(f"⚠ Skipped {report.skipped_entries} entries without a team number")

    frame = report.to_frame()
    if not frame.empty:
        columns = [
            "matches_played",
            "total_opr",
            "scaled_total_avg",
            "confidence_score",
            "defense_impact",
            "total_contribution_index",
        ]
        print()
        print(frame[columns].head(top).round(2).to_string())

    sweep = report.latest_sweep
    if sweep.rows:
        print(f"\nLambda sweep (train {sweep.train_match_count}, holdout {sweep.holdout_match_count}):")
        print(sweep.to_frame().round(3).to_string(index=False))


def rank_teams(args):
    """Compute and print the ranked contribution index."""
    print(f"Loading matches from {args.matches}...")
    try:
        matches = DataLoader.load_matches_from_json(args.matches)
        entries = DataLoader.load_entries_from_json(args.entries) if args.entries else []
    except (OSError, ValueError) as e:
        print(f"Error loading data: {e}")
        return 1

    print(f"Loaded {len(matches)} matches and {len(entries)} scouting entries")

    try:
        config = ContributionConfig(
            include_playoffs=not args.exclude_playoffs,
            non_negative=(args.mode == MODE_PRODUCTION),
            lambda_grid=args.lambda_grid,
            default_lambda=args.default_lambda,
            holdout_fraction=args.holdout_fraction,
        )
    except ValueError as exc:
        print(f"Error: {exc}")
        return 1

    try:
        if args.mode == "both":
            reports = run_both_modes(matches, entries, config)
        else:
            reports = {args.mode: run_contribution_pipeline(matches, entries, config)}
    except InsufficientDataError as exc:
        print(f"Error: {exc}")
        return 1

    for label, report in reports.items():
        print_report(report, label, args.top)

    if args.output:
        print(f"\nSaving report to {args.output}...")
        payload = {label: report.to_dict() for label, report in reports.items()}
        DataLoader.save_report_to_json(payload, args.output)
    print("✓ Done!")
    return 0


def validate_inputs(args):
    """Run schema checks on match / entry payloads."""
    try:
        errors = validate_matches_payload(DataLoader.load_payload(args.matches, "matches"))
        if args.entries:
            errors += validate_entries_payload(DataLoader.load_payload(args.entries, "entries"))
    except (OSError, ValueError) as e:
        print(f"Error loading data: {e}")
        return 1

    if errors:
        print(f"Found {len(errors)} problems:")
        for error in errors:
            print(f"  - {error}")
        return 1

    print("✓ Payloads look valid")
    return 0


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Alliance contribution ratings - ridge OPR blended with scouting data"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show engine log messages")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    rank_parser = subparsers.add_parser("rank", help="Rank teams by contribution index")
    rank_parser.add_argument("--matches", "-m", required=True, help="Match results JSON")
    rank_parser.add_argument("--entries", "-e", default=None, help="Scouting entries JSON")
    rank_parser.add_argument(
        "--mode",
        choices=[MODE_IMPACT, MODE_PRODUCTION, "both"],
        default=MODE_IMPACT,
        help="impact keeps negative OPR; production clamps it to zero",
    )
    rank_parser.add_argument(
        "--exclude-playoffs",
        action="store_true",
        help="Use qualification matches only",
    )
    rank_parser.add_argument(
        "--lambda-grid",
        type=parse_lambda_grid,
        default=DEFAULT_LAMBDA_GRID,
        help="Comma-separated ridge lambda candidates",
    )
    rank_parser.add_argument(
        "--default-lambda",
        type=float,
        default=DEFAULT_FALLBACK_LAMBDA,
        help="Lambda used when too few matches remain for a holdout",
    )
    rank_parser.add_argument(
        "--holdout-fraction",
        type=float,
        default=DEFAULT_HOLDOUT_FRACTION,
        help="Share of the latest matches held out for lambda selection",
    )
    rank_parser.add_argument("--top", type=int, default=25, help="Rows to print")
    rank_parser.add_argument("--output", "-o", default=None, help="Output report JSON")

    validate_parser = subparsers.add_parser("validate", help="Check input payloads for schema problems")
    validate_parser.add_argument("--matches", "-m", required=True, help="Match results JSON")
    validate_parser.add_argument("--entries", "-e", default=None, help="Scouting entries JSON")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    if args.command == "rank":
        return rank_teams(args)
    elif args.command == "validate":
        return validate_inputs(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
