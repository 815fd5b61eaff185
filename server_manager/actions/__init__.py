"""Operator actions offered by the main menu and the CLI."""
