"""Command line interface for the HTTP export stage."""
