"""Command line interface for rowcsv."""
