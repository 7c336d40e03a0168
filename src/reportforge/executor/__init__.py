"""DuckDB adapters for the engine's collaborators."""
