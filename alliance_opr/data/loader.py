"""Data loader for match corpora and scouting entries."""

import json
from typing import Dict, List

from ..models.match import Match


class DataLoader:
    """Loads engine inputs from JSON files."""

    @staticmethod
    def load_matches_from_json(file_path: str) -> List[Match]:
        """
        Load matches from a JSON file.

        Accepts either ``{"matches": [...]}`` or a bare list of TBA match
        objects.

        Args:
            file_path: Path to JSON file

        Returns:
            List of Match objects, in file order
        """
        with open(file_path, 'r') as f:
            data = json.load(f)

        rows = data.get('matches', []) if isinstance(data, dict) else data
        return [Match.from_dict(row) for row in rows if isinstance(row, dict)]

    @staticmethod
    def load_entries_from_json(file_path: str) -> List[Dict]:
        """
        Load scouting entries from a JSON file.

        Args:
            file_path: Path to JSON file (``{"entries": [...]}`` or a bare list)

        Returns:
            List of entry dicts
        """
        with open(file_path, 'r') as f:
            data = json.load(f)

        rows = data.get('entries', []) if isinstance(data, dict) else data
        return [row for row in rows if isinstance(row, dict)]

    @staticmethod
    def load_payload(file_path: str, list_key: str) -> Dict:
        """Load a JSON file, wrapping a bare list under ``list_key``."""
        with open(file_path, 'r') as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {list_key: data}

    @staticmethod
    def save_report_to_json(report: Dict, file_path: str) -> None:
        """
        Save a report dictionary to a JSON file.

        Args:
            report: Output of ``ContributionReport.to_dict`` (or a mapping of them)
            file_path: Output file path
        """
        with open(file_path, 'w') as f:
            json.dump(report, f, indent=2)
