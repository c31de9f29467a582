"""Git helpers and the per-commit iteration driver."""
