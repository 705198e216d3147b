"""Command line interface for uri-service (``uri-service`` entry point)."""
