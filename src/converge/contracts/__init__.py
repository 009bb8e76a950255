from .run_report import RunReport, ReportEntry, ReportAction, ErrorKind, RunMode, REPORT_VERSION

__all__ = [
    "RunReport",
    "ReportEntry",
    "ReportAction",
    "ErrorKind",
    "RunMode",
    "REPORT_VERSION",
]
