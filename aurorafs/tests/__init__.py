"""AuroraFS test suite."""
