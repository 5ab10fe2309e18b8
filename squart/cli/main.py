from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional, Sequence, Tuple

import uvicorn

from squart.engine.grid import Position, Side
from squart.search.selfplay import simulate_game
from squart.search.service import SearchService


def _cell(text: str) -> Tuple[int, int]:
    try:
        r, c = (int(p) for p in text.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected row,col but got {text!r}")
    return r, c


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="squart", description="Squart engine tools")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)

    sp = sub.add_parser("selfplay", help="Play the engine against itself and print JSON")
    sp.add_argument("--size", type=int, default=5)
    sp.add_argument("--layout", default=None, help="Start layout, rows joined by '/'")
    sp.add_argument("--side", default="first", help="Side to move first")
    sp.add_argument("--blocked", type=_cell, nargs="*", default=[], metavar="R,C")
    sp.add_argument("--movetime-ms", type=int, default=500)
    sp.add_argument("--max-depth", type=int, default=None)
    sp.add_argument("--pretty", action="store_true")
    return parser


def _selfplay(args: argparse.Namespace) -> int:
    side = Side.parse(args.side)
    if args.layout:
        position = Position.from_layout(args.layout, side)
    else:
        position = Position.empty(args.size, args.blocked, side)
    result = simulate_game(
        position,
        SearchService(),
        SearchService(),
        movetime_ms=args.movetime_ms,
        max_depth=args.max_depth,
    )
    print(json.dumps(result.to_dict(), indent=2 if args.pretty else None))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    if args.command == "serve":
        uvicorn.run(
            "squart.protocol.http.app:create_app",
            factory=True,
            host=args.host,
            port=args.port,
        )
        return
    logging.basicConfig(level=logging.WARNING, stream=sys.stderr)
    try:
        code = _selfplay(args)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        code = 2
    sys.exit(code)


if __name__ == "__main__":
    main()
