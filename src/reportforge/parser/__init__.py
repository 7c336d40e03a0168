"""YAML loading for entity catalogs and report definitions."""
