#!/usr/bin/env python3
"""Fetch a batch of inspections, write the review report and flag metric drift.

Run with ``uvpaint-review/api`` on ``PYTHONPATH``; exits 1 when the published
counts in the metrics table disagree with the comparison cards.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from services.batch import BatchError, BatchSettings, ReviewReport, parse_inspection_ids, run_review
from services.upstream import UpstreamClient


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--ids-file", type=Path, required=True, help="CSV or text file with one inspection ID per line")
    parser.add_argument("--output", type=Path, default=Path("artifacts") / "review_report.json")
    parser.add_argument("--concurrency", type=int, default=None)
    parser.add_argument("--timeout", type=float, default=None, help="Per-inspection fetch timeout in seconds")
    return parser.parse_args()


async def _run(inspection_ids: list[str], settings: BatchSettings) -> ReviewReport:
    client = UpstreamClient.from_env()
    try:
        return await run_review(inspection_ids, client, settings=settings)
    finally:
        await client.aclose()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")
    args = _parse_args()

    inspection_ids = parse_inspection_ids(args.ids_file.read_text(encoding="utf-8-sig"))
    defaults = BatchSettings.from_env()
    settings = BatchSettings(
        concurrency=args.concurrency or defaults.concurrency,
        fetch_timeout=args.timeout or defaults.fetch_timeout,
    )

    try:
        report = asyncio.run(_run(inspection_ids, settings))
    except BatchError as exc:
        print(f"Review failed: {exc.message}", file=sys.stderr)
        sys.exit(2)

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(report.model_dump_json(indent=2), encoding="utf-8")

    if report.failures:
        print(f"{len(report.failures)} inspection(s) could not be fetched; see {args.output}")
    if report.validation.mismatches:
        mismatches = [item.model_dump() for item in report.validation.mismatches]
        print(json.dumps({"mismatches": mismatches}, ensure_ascii=False, indent=2))
        sys.exit(1)
    print(f"Reviewed {len(report.inspections)} inspection(s); metrics aligned with cards.")


if __name__ == "__main__":
    main()
