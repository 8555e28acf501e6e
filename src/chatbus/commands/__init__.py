"""Command registration, argument parsing and dispatch."""
