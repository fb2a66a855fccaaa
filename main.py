"""CLI entrypoint: resolve the playable formats of a video."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from rich.console import Console
from rich.table import Table

from orchestrator import VideoInfoService
from utils.exceptions import StreamResolverError, is_caller_retryable
from utils.logger import setup_logging


console = Console()


def _format_table(info) -> Table:
    table = Table(title=f"Formats for {info.video_id}", show_header=True)
    table.add_column("itag", style="cyan")
    table.add_column("MIME type", style="white")
    table.add_column("Quality", style="green")
    table.add_column("Bitrate", justify="right")
    table.add_column("Audio kbps", justify="right")
    table.add_column("Flags", style="magenta")

    for record in info.formats:
        flags = [
            name
            for name, on in (
                ("best", record is info.best_format),
                ("hls", record.is_hls),
                ("dash", record.is_dash_mpd),
                ("live", record.is_live),
            )
            if on
        ]
        table.add_row(
            str(record.itag if record.itag is not None else "-"),
            record.mime_type or "-",
            record.quality_label or ("audio" if record.has_audio and not record.has_video else "-"),
            str(record.bitrate or "-"),
            str(record.audio_bitrate or "-"),
            ",".join(flags),
        )
    return table


async def _run(args: argparse.Namespace) -> int:
    service = VideoInfoService()
    options = {"lang": args.lang, "player_clients": args.clients}
    if args.full:
        info = await service.get_info(args.video_id, options)
    else:
        info = await service.get_basic_info(args.video_id, options)

    if args.json:
        payload = info.model_dump(exclude={"player_response", "initial_data"})
        payload["formats"] = [record.to_public() for record in info.formats]
        print(json.dumps(payload, ensure_ascii=False, default=str, indent=2))
        return 0

    if not args.full:
        console.print(f"[bold]{info.video_id}[/bold] {info.watch_url}")
        console.print(f"Player script: {info.player_script_url or 'N/A'}")
        return 0

    console.print(_format_table(info))
    console.print(f"\n[bold green]Best:[/bold green] {info.video_url}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Stream format resolver CLI")
    parser.add_argument("video_id", help="11-character video id")
    parser.add_argument("--full", action="store_true", help="resolve formats, not just basic info")
    parser.add_argument("--lang", default=None, help="page language (hl)")
    parser.add_argument("--clients", default=None, help="comma separated personas, e.g. WEB,IOS")
    parser.add_argument("--json", action="store_true", help="print JSON instead of a table")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    setup_logging(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        code = asyncio.run(_run(args))
    except StreamResolverError as exc:
        hint = "retry later" if is_caller_retryable(exc) else "upstream changed or video unsupported"
        console.print(f"[bold red]Error:[/bold red] {exc} ({hint})")
        code = 1
    except ValueError as exc:
        console.print(f"[bold red]Invalid input:[/bold red] {exc}")
        code = 2
    sys.exit(code)


if __name__ == "__main__":
    main()
