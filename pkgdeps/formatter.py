"""Plain-text rendering of query results."""

from __future__ import annotations

from pkgdeps.analysis.query import LeafReport
from pkgdeps.models import NameEntry, QueryResult, ResultFlag, ResultRecord

INDENT = "    "

_FLAG_MARKERS = {
    ResultFlag.NONE: "",
    ResultFlag.ALREADY_EXPANDED: " (...)",
    ResultFlag.DEPTH_TRUNCATED: " (+)",
}


def format_record(record: ResultRecord, show_type: bool = True) -> str:
    line = INDENT * record.depth + str(record.fmri)
    if show_type and record.dep_type is not None:
        line += f" [{record.dep_type.value}]"
    line += _FLAG_MARKERS[record.flag]
    if not record.resolved:
        line += " (unresolved)"
    return line


def format_results(results: list[QueryResult], show_type: bool = True) -> list[str]:
    lines: list[str] = []
    for result in results:
        lines.append(str(result.root))
        if not result.records:
            lines.append(INDENT + "(none)")
        lines.extend(format_record(r, show_type) for r in result.records)
    return lines


def format_names(entries: list[NameEntry]) -> list[str]:
    return [
        f"{e.fmri} {e.dep_type.value}" if e.dep_type is not None else str(e.fmri)
        for e in entries
    ]


def format_leaves(report: LeafReport) -> list[str]:
    lines = [str(f) for f in report.leaves]
    if report.ring_fenced:
        lines.append("")
        lines.append("Also removable once the above are gone:")
        lines.extend(INDENT + str(f) for f in report.ring_fenced)
    return lines
