"""Presentation layer - terminal rendering of run reports."""

from .human_formatter import format_report, format_order

__all__ = ["format_report", "format_order"]
