"""Shared utilities: logging setup and the error hierarchy."""
