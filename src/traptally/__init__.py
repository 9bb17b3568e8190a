"""TrapTally - curated Spotify playlist catalog with a sync engine."""

__version__ = "0.1.0"
