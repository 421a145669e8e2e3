from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

if __package__ is None:  # Allow running as a script.
    sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from listenstats import app_settings
from listenstats.services.listening_stats import build_listening_stats_service


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Track plays and inspect yearly listening stats.",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="Path to a settings.json file (defaults to the metadata dir).",
    )
    parser.add_argument(
        "--log-level",
        default="warning",
        choices=["debug", "info", "warning", "error"],
        help="Logging level.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    track = subparsers.add_parser("track", help="Record one completed play.")
    track.add_argument("song_id", help="Stable song identifier.")
    track.add_argument("title", help="Song title.")
    track.add_argument("--artist", default=None, help="Artist name.")
    track.add_argument("--thumbnail-url", default=None, help="Artwork URL.")
    track.add_argument(
        "--duration",
        type=int,
        required=True,
        help="Seconds listened.",
    )

    wrapped = subparsers.add_parser("wrapped", help="Print the summary for a year.")
    wrapped.add_argument("year", type=int, help="Year to summarize.")
    wrapped.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Max entries per top list.",
    )

    subparsers.add_parser("years", help="List years with recorded plays.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper())

    if getattr(args, "duration", 0) < 0:
        print("--duration must be >= 0", file=sys.stderr)
        return 2
    if getattr(args, "limit", None) is not None and args.limit < 1:
        print("--limit must be >= 1", file=sys.stderr)
        return 2

    settings = app_settings.load_settings(args.settings)
    service = build_listening_stats_service(settings)
    try:
        if args.command == "track":
            service.track_song_play(
                song_id=args.song_id,
                title=args.title,
                artist=args.artist,
                thumbnail_url=args.thumbnail_url,
                duration_seconds=args.duration,
            )
            print(f"Tracked {args.song_id}")
            return 0

        if args.command == "years":
            print(json.dumps({"years": service.get_available_years()}))
            return 0

        wrapped = service.get_wrapped_stats(args.year)
        if wrapped is None:
            print(f"No listening stats for {args.year}", file=sys.stderr)
            return 1
        if args.limit is not None:
            wrapped = wrapped.sliced(args.limit)
        print(json.dumps(wrapped.to_dict(), indent=2))
        return 0
    finally:
        service.close()


if __name__ == "__main__":
    raise SystemExit(main())
