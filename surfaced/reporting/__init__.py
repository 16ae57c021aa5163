"""Report generation and export"""

from .export import (
    audit_csv,
    audit_report_json,
    export_csv,
    get_audit_report_data,
    get_visibility_report_data,
    sanitize_csv_field,
    summary_report,
    visibility_csv,
)

__all__ = [
    "audit_csv",
    "audit_report_json",
    "export_csv",
    "get_audit_report_data",
    "get_visibility_report_data",
    "sanitize_csv_field",
    "summary_report",
    "visibility_csv",
]
