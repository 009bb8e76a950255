"""Report generation module - read-only output surfaces for run reports."""

from .markdown import generate_markdown, render_markdown
from .artifact import generate_artifacts

__all__ = [
    "generate_markdown",
    "render_markdown",
    "generate_artifacts",
]
