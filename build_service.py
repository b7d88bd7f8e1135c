#!/usr/bin/env python3
"""
Build this week's service deck (no GUI).

Reads the schedule row for the service date, fetches both hymns and the
scripture reading, folds in the latest song email, and fills the template.

Usage (examples):
  python build_service.py --template templates/service.pptx --schedule schedules/2024.xlsx
  python build_service.py --template service.pptx --schedule schedule.csv --date 06/01/2024 --song-email mail/song.eml --qa
"""
from __future__ import annotations

import argparse
import json
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

from config import (
    ensure_data_root_structure,
    load_build_prefs,
    load_data_root,
    load_pipeline_config,
    save_build_prefs,
)
from debug_tools import DebugRecorder, DebugSettings
from errors import HymnSlidesError
from mail_reader import MailMessage, latest_mail_message, read_mail_message
from qa_tools import analyze_deck, format_report
from schedule_reader import read_service, upcoming_saturday
from slide_builder import ServiceDeckBuilder

SCHEDULE_SUFFIXES = {".xlsx", ".csv"}
DEFAULT_CLEANUP_DAYS = 30


def _output_name(service_date) -> str:
    return service_date.strftime("%m-%d-%Y") + ".pptx"


def _latest_file(folder: Path, suffixes) -> Optional[Path]:
    files = [p for p in folder.glob("*") if p.is_file() and p.suffix.lower() in suffixes]
    if not files:
        return None
    return max(files, key=lambda p: p.stat().st_mtime)


def cleanup_old_decks(out_dir: Path, days: int, now: float | None = None) -> list[Path]:
    """Delete .pptx files in out_dir last modified more than `days` days ago."""
    now = now if now is not None else time.time()
    cutoff = now - days * 86400
    removed = []
    for p in sorted(out_dir.glob("*.pptx")):
        if p.stat().st_mtime < cutoff:
            p.unlink()
            removed.append(p)
    return removed


def _resolve_inputs(args, data_root: Optional[Path]):
    prefs = load_build_prefs()

    template = args.template or prefs.get("last_template")
    if not template:
        raise SystemExit("No template given and none remembered. Use --template.")
    template = Path(template).expanduser()
    if not template.is_absolute() and not template.exists() and data_root:
        template = data_root / "templates" / template

    schedule = Path(args.schedule).expanduser() if args.schedule else None
    if schedule is None and data_root:
        schedule = _latest_file(data_root / "schedules", SCHEDULE_SUFFIXES)
    if schedule is None:
        raise SystemExit("No schedule given and none found. Use --schedule.")

    out_dir = Path(args.out_dir).expanduser() if args.out_dir else (data_root / "output" if data_root else Path("output"))
    return template.resolve(), schedule.resolve(), out_dir.resolve()


def _song_message(args, data_root: Optional[Path], dbg: DebugRecorder) -> Optional[MailMessage]:
    if args.no_song:
        return None
    try:
        if args.song_email:
            return read_mail_message(Path(args.song_email).expanduser())
        if data_root and (data_root / "mail").is_dir():
            return latest_mail_message(data_root / "mail")
    except (OSError, ValueError) as e:
        # The song is optional; build without it.
        dbg.warn(f"Song email could not be read: {e}")
    return None


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Build the weekly service slide deck.")
    ap.add_argument("--template", help="PPTX template containing {{opening}}, {{opening_lyrics}}, {{closing}}, {{closing_lyrics}} ...")
    ap.add_argument("--schedule", help="Schedule workbook (.xlsx) or .csv")
    ap.add_argument("--date", help="Service date MM/DD/YYYY (default: upcoming Saturday)")
    ap.add_argument("--song-email", dest="song_email", help="Song email (.eml/.html/.txt); default: newest in <data_root>/mail")
    ap.add_argument("--no-song", dest="no_song", action="store_true", help="Leave the song slides blank")
    ap.add_argument("--out_dir", help="Output folder (default: <data_root>/output)")
    ap.add_argument("--output", help="Output file name (default: MM-DD-YYYY.pptx)")
    ap.add_argument("--qa", action="store_true", help="Print a QA report for the built deck")
    ap.add_argument("--cleanup-days", dest="cleanup_days", type=int, nargs="?", const=DEFAULT_CLEANUP_DAYS, default=None,
                    help=f"Delete decks in the output folder older than N days (default {DEFAULT_CLEANUP_DAYS})")
    args = ap.parse_args(argv)

    data_root_str = load_data_root()
    data_root = Path(data_root_str) if data_root_str else None
    if data_root:
        ensure_data_root_structure(data_root_str)

    if args.date:
        try:
            service_date = datetime.strptime(args.date, "%m/%d/%Y").date()
        except ValueError:
            ap.error(f"--date must be MM/DD/YYYY, got {args.date!r}")
    else:
        service_date = upcoming_saturday()

    template, schedule, out_dir = _resolve_inputs(args, data_root)
    output_path = out_dir / (args.output or _output_name(service_date))
    config = load_pipeline_config()
    dbg = DebugRecorder(DebugSettings.from_env())

    try:
        service = read_service(schedule, service_date, sheet_keyword=config.schedule_sheet_keyword)
        song = _song_message(args, data_root, dbg)
        result = ServiceDeckBuilder(template, config).build_deck(service, output_path, song_message=song, dbg=dbg)
    except HymnSlidesError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    save_build_prefs(str(template), output_path.name)

    print("Wrote:")
    print(" -", result.output_path)
    print(f"   opening: {result.opening_title} ({result.opening_slides} slides)")
    print(f"   closing: {result.closing_title} ({result.closing_slides} slides)")
    if result.scripture_refs:
        print(f"   scripture: {', '.join(result.scripture_refs)}")
    print(f"   song: {result.song_status.value} ({result.song_slides} slides)")
    if result.warnings:
        print(f"   warnings: {len(result.warnings)}")

    if args.qa:
        report = analyze_deck(result.output_path, config)
        print(format_report(report))
        qa_path = result.output_path.with_name(result.output_path.stem + "_qa.json")
        qa_path.write_text(json.dumps(report, indent=2), encoding="utf-8")
        print(" -", qa_path)

    if args.cleanup_days is not None:
        for p in cleanup_old_decks(out_dir, args.cleanup_days):
            print("Removed:", p)

    return 0


if __name__ == "__main__":
    sys.exit(main())
