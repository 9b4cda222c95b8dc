"""Item mesh test suite."""
