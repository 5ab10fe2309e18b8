#!/usr/bin/env python3
# ruff: noqa: E402
from __future__ import annotations

import argparse
import json
import os
import platform
import subprocess
import sys
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

# Ensure repo root (which contains `squart/`) is importable when running directly
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from squart.engine.grid import Position, Side
from squart.search.service import SearchConfig, SearchResult, SearchService


@dataclass
class BenchItem:
    id: str
    layout: str
    side_to_move: str = "first"
    movetime_ms: Optional[int] = None
    max_depth: Optional[int] = None


# Built-in suite: open boards of a few sizes plus blocked and midgame shapes
DEFAULT_SUITE: List[BenchItem] = [
    BenchItem("empty4", "..../..../..../...."),
    BenchItem("empty5", "...../...../...../...../....."),
    BenchItem("cross5", "..#../..#../#####/..#../..#..", max_depth=6),
    BenchItem("mid6", "HH..../....V./..#.V./....../.HH.../......", side_to_move="second"),
    BenchItem("empty8", "/".join(["." * 8] * 8)),
]


def _git_info() -> Dict[str, Optional[str]]:
    def run(cmd: List[str]) -> Optional[str]:
        try:
            out = subprocess.check_output(cmd, cwd=REPO_ROOT, stderr=subprocess.DEVNULL)
            return out.decode().strip()
        except (OSError, subprocess.CalledProcessError):
            return None

    return {
        "commit": run(["git", "rev-parse", "HEAD"]),
        "describe": run(["git", "describe", "--dirty", "--tags", "--always"]),
    }


def load_suite(path: Optional[str]) -> List[BenchItem]:
    if path is None:
        return list(DEFAULT_SUITE)
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    items: List[BenchItem] = []
    for obj in data.get("positions", []):
        items.append(
            BenchItem(
                id=str(obj.get("id", "pos")),
                layout=str(obj["layout"]),
                side_to_move=str(obj.get("side_to_move", "first")),
                movetime_ms=(
                    int(obj["movetime_ms"]) if obj.get("movetime_ms") is not None else None
                ),
                max_depth=(int(obj["max_depth"]) if obj.get("max_depth") is not None else None),
            )
        )
    return items


def bench_position(
    svc: SearchService,
    item: BenchItem,
    *,
    movetime_ms: Optional[int],
    max_depth: Optional[int],
    iterations: int,
) -> Dict[str, Any]:
    # Per-item override > global
    eff_movetime = item.movetime_ms if item.movetime_ms is not None else movetime_ms
    eff_depth = item.max_depth if item.max_depth is not None else max_depth
    if eff_movetime is None and eff_depth is None:
        eff_movetime = 1000

    position = Position.from_layout(item.layout, Side.parse(item.side_to_move))

    total_time = 0
    total_nodes = 0
    last: Optional[SearchResult] = None
    for _ in range(max(1, iterations)):
        res = svc.search(position, movetime_ms=eff_movetime, max_depth=eff_depth)
        total_time += max(0, res.time_ms)
        total_nodes += max(0, res.nodes)
        last = res
    assert last is not None

    avg_time = int(total_time / max(1, iterations))
    avg_nodes = int(total_nodes / max(1, iterations))
    nps = int(avg_nodes * 1000 / max(1, avg_time)) if avg_time > 0 else 0

    return {
        "id": item.id,
        "layout": item.layout,
        "side_to_move": position.side_to_move.value,
        "movetime_ms": eff_movetime,
        "depth": last.depth,
        "max_depth": last.max_depth,
        "best_move": last.best_move.to_str() if last.best_move else None,
        "score": last.score,
        "proven": last.proven,
        "time_ms": avg_time,
        "nodes": avg_nodes,
        "nps": nps,
        "cutoffs": last.cutoffs,
        "tt_hits": last.tt_hits,
        "tt_probes": last.tt_probes,
        "tt_stores": last.tt_stores,
        "tt_size": last.tt_size,
        "timed_out": last.timed_out,
        "iters": last.iters,
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Run search benchmarks over a layout suite")
    parser.add_argument("--suite", default=None, help="JSON file with a 'positions' list")
    parser.add_argument("--movetime-ms", type=int, default=None, help="Global movetime")
    parser.add_argument("--max-depth", type=int, default=None, help="Global depth cap")
    parser.add_argument("--tt-max-entries", type=int, default=None, help="TT entry cap")
    parser.add_argument("--iterations", type=int, default=1, help="Runs per position")
    parser.add_argument("--out", type=str, default=None, help="Write JSON results to file path")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output")
    parser.add_argument("--progress", action="store_true", help="Per-position progress on stderr")
    args = parser.parse_args()

    items = load_suite(args.suite)
    if not items:
        raise SystemExit("No positions found in suite")

    svc = SearchService(SearchConfig(tt_max_entries=args.tt_max_entries))

    results: List[Dict[str, Any]] = []
    t0 = time.perf_counter()
    for idx, it in enumerate(items, start=1):
        if args.progress:
            sys.stderr.write(f"[{idx}/{len(items)}] {it.id}: running...\n")
            sys.stderr.flush()
        res = bench_position(
            svc,
            it,
            movetime_ms=args.movetime_ms,
            max_depth=args.max_depth,
            iterations=max(1, args.iterations),
        )
        results.append(res)
        if args.progress:
            sys.stderr.write(
                f"    depth={res['depth']} time={res['time_ms']}ms nodes={res['nodes']} best={res['best_move']}\n"
            )
            sys.stderr.flush()

    dt_ms = int((time.perf_counter() - t0) * 1000)
    total_nodes = sum(r["nodes"] for r in results)
    payload = {
        "meta": {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "python": sys.version.split()[0],
            "platform": platform.platform(),
            "git": _git_info(),
            "config": {
                "suite": args.suite or "builtin",
                "iterations": max(1, args.iterations),
                "global_movetime_ms": args.movetime_ms,
                "global_max_depth": args.max_depth,
                "tt_max_entries": args.tt_max_entries,
            },
        },
        "results": results,
        "summary": {
            "positions": len(results),
            "total_time_ms": dt_ms,
            "total_nodes": total_nodes,
            "overall_nps": int(total_nodes * 1000 / max(1, dt_ms)) if dt_ms > 0 else 0,
        },
    }

    if args.out:
        out_dir = os.path.dirname(args.out)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        with open(args.out, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2 if args.pretty else None)
        print(args.out)
    else:
        print(json.dumps(payload, indent=2 if args.pretty else None))


if __name__ == "__main__":
    main()
