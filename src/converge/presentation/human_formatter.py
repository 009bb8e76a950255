"""Human-friendly output formatter - converts run reports to readable text."""

import os
from typing import List, Optional
from ..contracts.run_report import ReportAction, ReportEntry, RunMode, RunReport


def _use_ascii(ascii_mode: Optional[bool] = None) -> bool:
    """Resolve whether to use ASCII output (checked at format time)."""
    if ascii_mode is not None:
        return bool(ascii_mode)
    return os.environ.get("CONVERGE_ASCII", "").lower() in ("1", "true", "yes")


def _box(title: str, width: int = 65, ascii_mode: bool = False) -> List[str]:
    """Return box-drawing header lines."""
    b = {"tl": "+", "tr": "+", "h": "-", "v": "|"} if ascii_mode else {"tl": "┌", "tr": "┐", "h": "─", "v": "│"}
    h = b["h"] * (width - 2)
    return [
        b["tl"] + h + b["tr"],
        f"{b['v']} {title:<{width - 4}} {b['v']}",
        ("+" if ascii_mode else "└") + h + ("+" if ascii_mode else "┘"),
        "",
    ]


def _section(title: str, width: int = 65) -> List[str]:
    """Return section divider."""
    h = "-" * width
    return [h, title.center(width), h]


def _symbol(action: ReportAction, ascii_mode: bool) -> str:
    symbols = {
        ReportAction.CREATE: "+",
        ReportAction.DELETE: "-",
        ReportAction.NO_OP: "=" if ascii_mode else "·",
        ReportAction.SKIP: "~",
        ReportAction.FAIL: "!" if ascii_mode else "✗",
    }
    return symbols.get(action, "?")


def _entry_line(entry: ReportEntry, ascii_mode: bool) -> str:
    line = f"  {_symbol(entry.action, ascii_mode)} {entry.action.value:<7} {entry.kind:<16} {entry.id}"
    if entry.error:
        line += f"  [{entry.error.value}]"
    return line


def format_report(report: RunReport, ascii_mode: Optional[bool] = None, verbose: bool = False) -> str:
    """
    Render a run report for the terminal.

    NO_OP entries are folded into the summary unless verbose is set.
    """
    ascii_mode = _use_ascii(ascii_mode)
    planning = report.mode == RunMode.PLAN
    title = "Converge Plan" if planning else "Converge Apply"
    lines = _box(title, ascii_mode=ascii_mode)

    shown = [e for e in report.entries if verbose or e.action != ReportAction.NO_OP]
    if not report.entries:
        lines.append("No resources to reconcile.")
    elif not shown:
        lines.append("Infrastructure is up to date. No changes.")
    else:
        lines.extend(_section("Planned actions" if planning else "Actions"))
        for entry in shown:
            lines.append(_entry_line(entry, ascii_mode))
        lines.append("")

    problems = [e for e in report.entries if e.action in (ReportAction.FAIL, ReportAction.SKIP)]
    if problems:
        lines.extend(_section("Problems"))
        for entry in problems:
            reason = entry.message or (entry.error.value if entry.error else "")
            lines.append(f"  {entry.id}: {reason}")
        lines.append("")

    counts = report.counts()
    if planning:
        changes = f"{counts['CREATE']} to create, {counts['DELETE']} to delete"
    else:
        changes = f"{counts['CREATE']} created, {counts['DELETE']} deleted"
    lines.append(
        f"Summary: {changes}, {counts['NO_OP']} unchanged, "
        f"{counts['FAIL']} failed, {counts['SKIP']} skipped"
    )
    return "\n".join(lines)


def format_order(order_ids: List[str], ascii_mode: Optional[bool] = None) -> str:
    """Render a creation order as a numbered list."""
    ascii_mode = _use_ascii(ascii_mode)
    lines = _box("Creation order", ascii_mode=ascii_mode)
    for idx, resource_id in enumerate(order_ids, start=1):
        lines.append(f"  {idx:>3}. {resource_id}")
    return "\n".join(lines)
