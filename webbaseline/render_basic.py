"""Rich renderers for findings and feature records."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .constants import REASON_LABEL_MAP, STATUS_ICON_MAP, STATUS_LABEL_MAP
from .model import BaselineStatus, FeatureRecord, Finding
from .util.text import ellipsize


def status_key(status: BaselineStatus | None) -> str:
    if status is None:
        return "unknown"
    if status.baseline is True:
        return "high"
    if status.baseline is False:
        return "false"
    return str(status.baseline)


def _status_line(status: BaselineStatus | None) -> str:
    key = status_key(status)
    line = f"{STATUS_ICON_MAP[key]} {STATUS_LABEL_MAP[key]}"
    if status is not None and status.low_date:
        line += f" since {status.low_date.isoformat()}"
    if status is not None and status.high_date:
        line += f", widely available since {status.high_date.isoformat()}"
    return line


def render_feature(record: FeatureRecord) -> Group:
    """Render one catalog record as a Rich renderable group."""
    lines: list[Text] = []

    lines.append(Text(record.name, style="bold"))
    lines.append(Text(f"Baseline: {_status_line(record.status)}"))

    if record.spec_url:
        lines.append(Text(f"Spec: {record.spec_url}"))
    if record.doc_url:
        lines.append(Text(f"Docs: {record.doc_url}"))

    if record.description:
        lines.append(Text(""))
        lines.append(Text("Description", style="bold"))
        lines.append(Text(record.description))

    return Group(Panel(Group(*lines), border_style="blue", title=record.id))


def render_findings(uri: str, findings: Sequence[Finding], width: int = 60) -> Table:
    """Render the findings of one document as a table, 1-based line:column."""
    table = Table(title=uri, title_justify="left", show_lines=False)
    table.add_column("Location", style="cyan", no_wrap=True)
    table.add_column("Feature", style="bold")
    table.add_column("Status")
    for finding in findings:
        start = finding.range.start
        status_style = "red" if finding.reason == "unsupported" else "yellow"
        table.add_row(
            f"{start.line + 1}:{start.column + 1}",
            ellipsize(f"{finding.feature_name} ({finding.feature_id})", width),
            Text(REASON_LABEL_MAP.get(finding.reason, finding.reason), style=status_style),
        )
    return table


def render_summary(results: Mapping[str, Sequence[Finding]]) -> Text:
    total = sum(len(findings) for findings in results.values())
    affected = sum(1 for findings in results.values() if findings)
    if not total:
        return Text(f"No compatibility findings in {len(results)} file(s).", style="green")
    return Text(
        f"{total} finding(s) in {affected} of {len(results)} file(s).",
        style="bold red",
    )
