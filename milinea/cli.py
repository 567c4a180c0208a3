"""Command-line front-end: one conversation turn from the terminal.

Examples:
    python -m milinea "desde la UMSS a la plaza principal"
    python -m milinea "quiero ir a la Cancha" --lng -66.15 --lat -17.39
    python -m milinea "de UMSS a Plaza Colón" --map trip.html
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .container import Container
from .domain.errors import MilineaError
from .logging_setup import configure_logging
from .ports.rendering import MapRendererPort
from .services import ConversationService

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="milinea",
        description="Find the fastest bus line for a trip request.",
    )
    parser.add_argument("message", help='Rider message, e.g. "desde la UMSS a la Cancha"')
    parser.add_argument("--lng", type=float, help="GPS origin longitude")
    parser.add_argument("--lat", type=float, help="GPS origin latitude")
    parser.add_argument("--session", help="Session id to continue a conversation")
    parser.add_argument("--threshold", type=float, help="Initial walking threshold (m)")
    parser.add_argument("--map", type=Path, help="Write an HTML map of the options here")
    parser.add_argument("--json", action="store_true", help="Print the full JSON reply")
    return parser


def run(args: argparse.Namespace, container: Container) -> int:
    """Execute one turn and print the reply. Returns the exit code."""
    payload = {"message": args.message}
    if args.lng is not None and args.lat is not None:
        payload["origin"] = {"lng": args.lng, "lat": args.lat}
    if args.session:
        payload["session_id"] = args.session
    if args.threshold is not None:
        payload["threshold_m"] = args.threshold

    service: ConversationService = container.resolve(ConversationService)
    try:
        turn = service.turn(payload)
    except MilineaError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(turn.reply, ensure_ascii=False, indent=2))
    else:
        print(turn.reply["reply"])

    if args.map is not None:
        if turn.result is None or turn.origin is None or turn.destination is None:
            print("No route search was run, no map written.", file=sys.stderr)
        else:
            renderer: MapRendererPort = container.resolve(MapRendererPort)
            try:
                path = renderer.render(
                    turn.origin,
                    turn.destination,
                    turn.result.options,
                    args.map,
                    title=args.message,
                )
                print(f"Map saved to: {path}")
            except MilineaError as e:
                print(f"Map generation failed: {e}", file=sys.stderr)
                return 1
    return 0


def main(argv: Optional[Sequence[str]] = None, container: Optional[Container] = None) -> int:
    args = build_parser().parse_args(argv)
    if (args.lng is None) != (args.lat is None):
        build_parser().error("--lng and --lat must be given together")

    if container is None:
        configure_logging()
        container = Container.create_default()

    container.start_maintenance()
    try:
        return run(args, container)
    finally:
        container.shutdown()
