"""Domain-level protocols."""
