"""Command line interface for tether."""
