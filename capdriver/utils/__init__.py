"""Shared utilities for capdriver."""
