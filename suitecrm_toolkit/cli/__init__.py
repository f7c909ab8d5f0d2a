"""Command line interface for the SuiteCRM toolkit."""
