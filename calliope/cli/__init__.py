"""Command line interface for Calliope."""
