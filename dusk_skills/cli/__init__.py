"""Command-line interface for dusk-skills."""
