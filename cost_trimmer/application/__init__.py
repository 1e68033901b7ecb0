"""Application layer: access guard, statistics and read orchestration."""
