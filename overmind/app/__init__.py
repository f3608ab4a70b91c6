"""Demo runner."""
