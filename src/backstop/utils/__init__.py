"""Utility modules for Backstop."""
