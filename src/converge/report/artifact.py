"""CI/CD artifact generation from RunReport."""

import json
from datetime import datetime, timezone
from pathlib import Path
from ..contracts.run_report import RunReport
from ..utils.errors import ReportWriteError
from ..utils.logging import get_logger

logger = get_logger("report.artifact")


def generate_artifacts(report: RunReport, output_dir: Path) -> None:
    """
    Generate CI/CD artifacts from RunReport.

    Creates the following files in output_dir:
    - run_report.json: Full RunReport (exact copy)
    - summary.json: Counts and status
    - metadata.json: Report metadata

    Raises:
        ReportWriteError: If file write fails
    """
    from .. import __version__

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ReportWriteError(f"Failed to create output directory: {e}")

    report_path = output_dir / "run_report.json"
    try:
        with open(report_path, 'w', encoding='utf-8') as f:
            json.dump(report.model_dump(mode="json"), f, indent=2)
        logger.debug(f"Written run_report.json: {report_path}")
    except (OSError, TypeError) as e:
        raise ReportWriteError(f"Failed to write run_report.json: {e}")

    summary = {
        "mode": report.mode.value,
        "succeeded": report.succeeded,
        "counts": report.counts(),
        "failed": [entry.id for entry in report.failed],
        "skipped": [entry.id for entry in report.skipped],
    }

    summary_path = output_dir / "summary.json"
    try:
        with open(summary_path, 'w', encoding='utf-8') as f:
            json.dump(summary, f, indent=2)
        logger.debug(f"Written summary.json: {summary_path}")
    except OSError as e:
        raise ReportWriteError(f"Failed to write summary.json: {e}")

    metadata = {
        "converge_version": __version__,
        "report_version": report.version,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "generator": "converge report artifact"
    }

    metadata_path = output_dir / "metadata.json"
    try:
        with open(metadata_path, 'w', encoding='utf-8') as f:
            json.dump(metadata, f, indent=2)
        logger.debug(f"Written metadata.json: {metadata_path}")
    except OSError as e:
        raise ReportWriteError(f"Failed to write metadata.json: {e}")

    logger.info(f"Generated artifacts in: {output_dir}")
