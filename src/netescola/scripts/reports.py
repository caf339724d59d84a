"""Inspect, export and clear the video issue reports students have filed."""

import argparse
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

from rich.console import Console
from rich.table import Table

from netescola.models.report import IssueReport, IssueType
from netescola.services.video_reports import ReportLog
from netescola.utils.config import load_config
from netescola.utils.storage import LocalStore

FILTER_CHOICES = ['all'] + [issue.value for issue in IssueType]


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage NetEscola+ video issue reports.")
    parser.add_argument(
        "--db",
        help="Path to the local store (defaults to NETESCOLA_DB_PATH).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List reports.")
    list_parser.add_argument(
        "--type",
        choices=FILTER_CHOICES,
        default="all",
        help="Only show one issue type.",
    )

    subparsers.add_parser("summary", help="Count reports per issue type.")

    export_parser = subparsers.add_parser("export", help="Write reports to a JSON file.")
    export_parser.add_argument(
        "--output",
        type=Path,
        help="Output file (defaults to video-reports-<date>.json).",
    )

    subparsers.add_parser("clear", help="Delete every report.")

    return parser.parse_args(argv)


def reports_table(reports: List[IssueReport]) -> Table:
    table = Table(title=f"Relatórios ({len(reports)})")
    table.add_column("Vídeo")
    table.add_column("Problema")
    table.add_column("Data")
    table.add_column("Aluno")
    for report in reports:
        table.add_row(
            report.video_id,
            report.issue_type,
            report.timestamp.strftime("%d/%m/%Y %H:%M"),
            report.user_id or "-",
        )
    return table


def summary_table(counts: Dict[str, int], cache_stats: Optional[Dict[str, int]] = None) -> Table:
    total = sum(counts.values())
    table = Table(title=f"Resumo dos Relatórios ({total} total)")
    table.add_column("Tipo")
    table.add_column("Quantidade", justify="right")
    for issue_type, count in sorted(counts.items()):
        table.add_row(issue_type, str(count))
    if cache_stats is not None:
        table.add_section()
        table.add_row("cache: total", str(cache_stats['total']))
        table.add_row("cache: válidos", str(cache_stats['valid']))
        table.add_row("cache: expirados", str(cache_stats['expired']))
    return table


def default_export_path() -> Path:
    return Path(f"video-reports-{date.today().isoformat()}.json")


def run(args: argparse.Namespace, report_log: ReportLog, console: Console) -> None:
    if args.command == "list":
        console.print(reports_table(report_log.filter(args.type)))
        return

    if args.command == "summary":
        console.print(summary_table(report_log.counts_by_type()))
        return

    if args.command == "export":
        output = args.output or default_export_path()
        count = report_log.export(output)
        console.print(f"Exported {count} reports to {output}")
        return

    if args.command == "clear":
        report_log.clear()
        console.print("Reports cleared")
        return

    raise RuntimeError(f"Unhandled command: {args.command}")


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    db_path = args.db or load_config()['database_path']
    run(args, ReportLog(LocalStore(db_path)), Console())


if __name__ == "__main__":
    main()
