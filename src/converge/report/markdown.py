"""Markdown report generation from RunReport."""

from pathlib import Path
from ..contracts.run_report import ReportAction, RunMode, RunReport
from ..utils.errors import ReportWriteError
from ..utils.logging import get_logger

logger = get_logger("report.markdown")


def render_markdown(report: RunReport) -> str:
    """Render a RunReport as a Markdown document."""
    counts = report.counts()
    title = "Plan" if report.mode == RunMode.PLAN else "Apply"

    sections = []
    sections.append(f"# Converge {title} Report")
    sections.append("")

    sections.append("## Summary")
    sections.append("")
    sections.append(f"- **Mode:** {report.mode.value}")
    sections.append(f"- **Status:** {'succeeded' if report.succeeded else 'incomplete'}")
    for action in ReportAction:
        sections.append(f"- **{action.value}:** {counts[action.value]}")
    sections.append("")

    sections.append("## Actions")
    sections.append("")
    if report.entries:
        sections.append("| # | Resource | Kind | Action | Error |")
        sections.append("|---|----------|------|--------|-------|")
        for idx, entry in enumerate(report.entries, start=1):
            error = entry.error.value if entry.error else ""
            sections.append(f"| {idx} | `{entry.id}` | {entry.kind} | {entry.action.value} | {error} |")
    else:
        sections.append("No resources to reconcile.")
    sections.append("")

    problems = report.failed + report.skipped
    if problems:
        sections.append("## Problems")
        sections.append("")
        for entry in problems:
            sections.append(f"- **{entry.id}** ({entry.action.value}): {entry.message or entry.error.value}")
        sections.append("")

    return "\n".join(sections)


def generate_markdown(report: RunReport, output_path: Path) -> None:
    """
    Generate markdown report from RunReport.

    Raises:
        ReportWriteError: If file write fails
    """
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(render_markdown(report))
        logger.info(f"Generated markdown report: {output_path}")
    except OSError as e:
        raise ReportWriteError(f"Failed to write markdown report: {e}")
