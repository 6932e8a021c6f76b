"""Command line tool for apm."""
