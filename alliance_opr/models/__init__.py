"""Match and team data models."""
