"""Command-line interface for feedsolve."""
