"""Operator CLI for delivery logs and message previews.

Usage::

    vibeflow-notify-logs list --status failed --limit 20
    vibeflow-notify-logs summary
    vibeflow-notify-logs preview mcp_server server.json
    vibeflow-notify-logs preview member_joined
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from vibeflow_notify.messaging.content import CONTENT_TYPES, ContentRecord, parse_record
from vibeflow_notify.messaging.formatters import format_message
from vibeflow_notify.state.delivery_log import DELIVERY_STATUSES, get_delivery_log_store

console = Console()

_STATUS_STYLES = {"success": "green", "failed": "red", "skipped": "yellow"}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vibeflow-notify-logs",
        description="Inspect Slack delivery logs and preview messages.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="Show recent delivery attempts.")
    list_cmd.add_argument("--status", choices=DELIVERY_STATUSES, default="")
    list_cmd.add_argument("--content-type", choices=CONTENT_TYPES, default="")
    list_cmd.add_argument("--limit", type=int, default=20)

    sub.add_parser("summary", help="Show aggregate delivery counts.")

    preview = sub.add_parser("preview", help="Print the Block Kit payload for a record.")
    preview.add_argument("content_type", choices=CONTENT_TYPES)
    preview.add_argument(
        "file",
        nargs="?",
        default=None,
        help="JSON file holding the record (a list of items for ide_news).",
    )
    return parser


def _cmd_list(args: argparse.Namespace) -> int:
    result = get_delivery_log_store().query(
        status=args.status, content_type=args.content_type, limit=args.limit,
    )
    table = Table(title=f"Delivery logs ({len(result['entries'])} of {result['total']})")
    table.add_column("Delivered at")
    table.add_column("Status")
    table.add_column("Type")
    table.add_column("Recipient")
    table.add_column("Bytes", justify="right")
    table.add_column("Error")
    for e in result["entries"]:
        style = _STATUS_STYLES.get(e["status"], "")
        table.add_row(
            e["delivered_at"],
            f"[{style}]{e['status']}[/{style}]" if style else e["status"],
            e.get("content_type") or "",
            e.get("display_name") or e["recipient"],
            str(e["payload_size"]),
            e.get("error_message") or "",
        )
    console.print(table)
    return 0


def _cmd_summary(_args: argparse.Namespace) -> int:
    summary = get_delivery_log_store().get_summary()
    console.print(f"[bold]Total deliveries:[/bold] {summary['total']}")
    for status in DELIVERY_STATUSES:
        count = summary["by_status"].get(status, 0)
        console.print(f"  {status:<8} {count}")
    if summary["by_content_type"]:
        console.print("[bold]By content type:[/bold]")
        for content_type, count in sorted(summary["by_content_type"].items()):
            console.print(f"  {content_type:<14} {count}")
    console.print(f"[bold]Average payload:[/bold] {summary['avg_payload_size']} bytes")
    last_failure = summary["last_failure"]
    if last_failure:
        console.print(
            f"[red]Last failure:[/red] {last_failure['delivered_at']} "
            f"{last_failure['recipient']}: {last_failure['error_message']}"
        )
    return 0


def _load_preview_record(content_type: str, file: str | None) -> ContentRecord:
    data: Any = {}
    if file is not None:
        path = Path(file)
        if not path.is_file():
            raise FileNotFoundError(f"file not found: {path}")
        data = json.loads(path.read_text(encoding="utf-8"))
    if content_type == "ide_news" and isinstance(data, list):
        data = {"items": data}
    if not isinstance(data, dict):
        raise ValueError("record must be a JSON object")
    return parse_record({**data, "content_type": content_type})


def _cmd_preview(args: argparse.Namespace) -> int:
    try:
        record = _load_preview_record(args.content_type, args.file)
    except ValidationError as exc:
        console.print(f"[red]Error:[/red] invalid {args.content_type} record")
        for err in exc.errors():
            loc = ".".join(str(p) for p in err["loc"])
            console.print(f"  {loc}: {err['msg']}")
        return 1
    except (OSError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        return 1

    message = format_message(record).truncated()
    console.print_json(data=message.to_dict())
    console.print(f"[dim]{message.payload_size()} bytes, {len(message.blocks)} blocks[/dim]")
    return 0


_COMMANDS = {
    "list": _cmd_list,
    "summary": _cmd_summary,
    "preview": _cmd_preview,
}


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``vibeflow-notify-logs``."""
    args = _build_parser().parse_args(argv)
    sys.exit(_COMMANDS[args.command](args))


if __name__ == "__main__":
    main()
