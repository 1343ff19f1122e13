"""Shared utilities: errors, logging and constants."""
