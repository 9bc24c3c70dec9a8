"""Command line interface for descentlab."""
