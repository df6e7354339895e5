"""Input parsing: tolerant field probes, entry aggregation, validation and loading."""
