#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from movienight.db.session import AsyncSessionLocal
from movienight.schemas.cycles import DailyCycleOut
from movienight.services.cycle_store import current_cycle_id, load_cycle, snapshot_from_cycle
from movienight.services.cycles import recreate_cycle

logger = logging.getLogger("reset_daily_cycle")


def _parse_cycle_id(raw: str | None) -> str | None:
    if raw is None:
        return None
    value = raw.strip()
    if not value:
        return None
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        return None


def _summary_lines(*, apply: bool, before: DailyCycleOut | None, after: DailyCycleOut | None) -> list[str]:
    mode = "apply" if apply else "dry-run"
    lines = [f"mode: {mode}"]
    if before is None:
        lines.append("before: (no cycle)")
    else:
        lines.append(
            f"before: {before.id} {before.current_status} "
            f"decisions={len(before.decisions)} nominations={len(before.nominations)} votes={len(before.votes)}"
        )
    if after is not None:
        lines.append(f"after: {after.id} {after.current_status}")
    return lines


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Delete a daily cycle with all decisions, nominations and votes, and start it over."
    )
    parser.add_argument(
        "--cycle-id",
        default=None,
        help="Cycle date as YYYY-MM-DD. Defaults to the current cycle (4 AM day boundary).",
    )
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Perform the reset. Without this flag, the script only reports the current state.",
    )
    parser.add_argument("--verbose", action="store_true", help="Log SQL-level progress.")
    args = parser.parse_args()

    if args.cycle_id is not None:
        parsed = _parse_cycle_id(args.cycle_id)
        if parsed is None:
            parser.error("--cycle-id must be a date formatted YYYY-MM-DD.")
        args.cycle_id = parsed

    return args


async def _main_async(args: argparse.Namespace) -> list[str]:
    cycle_id = args.cycle_id or current_cycle_id()

    async with AsyncSessionLocal() as db:
        existing = await load_cycle(db, cycle_id)
        before = snapshot_from_cycle(existing) if existing is not None else None
        after = None
        if args.apply:
            logger.info("Resetting cycle %s", cycle_id)
            after = await recreate_cycle(db, cycle_id)

    return _summary_lines(apply=args.apply, before=before, after=after)


def main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    print("Daily cycle reset")
    for line in asyncio.run(_main_async(args)):
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
