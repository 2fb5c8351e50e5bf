"""CLI commands for capdriver."""
