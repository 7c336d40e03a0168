"""SQL compilation for entity fetches."""
