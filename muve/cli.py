"""CLI for MUVE: create the database, run evaluations from the terminal."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys


async def cmd_init_db(args):
    """Create the evaluation tables."""
    from muve.db.engine import create_tables, engine

    await create_tables()
    await engine.dispose()
    print("Database ready")


async def cmd_evaluate(args):
    """Submit an evaluation and wait for it to finish."""
    from muve.config import get_settings
    from muve.db.engine import async_session_factory, create_tables, engine
    from muve.dependencies import build_services

    if not args.address and not args.url:
        print("Either --address or --url is required")
        sys.exit(1)

    settings = get_settings()
    if args.batch_delay is not None:
        settings.pipeline.batch_delay_seconds = args.batch_delay

    await create_tables()
    services = build_services(settings, async_session_factory)
    try:
        job_id = await services.orchestrator.submit(args.needs, address=args.address, listing_url=args.url)
        print(f"Evaluation {job_id} started", file=sys.stderr)
        await services.orchestrator.wait(job_id)
        record = await services.store.get(job_id)
        print(record.model_dump_json(indent=2))
    finally:
        await services.aclose()
        await engine.dispose()


async def cmd_show(args):
    """Print a stored evaluation."""
    from muve.db.engine import async_session_factory, engine
    from muve.db.store import EvaluationStore

    record = await EvaluationStore(async_session_factory).get(args.job_id)
    await engine.dispose()
    if record is None:
        print(f"Evaluation {args.job_id} not found")
        sys.exit(1)
    print(json.dumps(record.model_dump(mode="json"), indent=2))


async def cmd_list(args):
    """List recent evaluations."""
    from muve.db.engine import async_session_factory, engine
    from muve.db.store import EvaluationStore

    records = await EvaluationStore(async_session_factory).recent(status=args.status, limit=args.limit)
    await engine.dispose()
    if not records:
        print("No evaluations found.")
        return
    for r in records:
        score = "-" if r.final_score is None else r.final_score
        print(f"  {r.id}  {r.status:<10}  score={score:<4}  {r.subject}")


def main():
    parser = argparse.ArgumentParser(description="MUVE CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log pipeline progress")
    subparsers = parser.add_subparsers(dest="command")

    # init-db
    subparsers.add_parser("init-db", help="Create the evaluation tables")

    # evaluate
    ev = subparsers.add_parser("evaluate", help="Run one evaluation and print the final record")
    ev.add_argument("--address", default=None, help="Property address")
    ev.add_argument("--url", default=None, help="Listing URL")
    ev.add_argument("--needs", required=True, help="Accessibility needs, in plain words")
    ev.add_argument("--batch-delay", type=float, default=None, help="Override the delay between vision batches")

    # show
    sh = subparsers.add_parser("show", help="Print a stored evaluation")
    sh.add_argument("job_id", help="Evaluation id")

    # list
    ls = subparsers.add_parser("list", help="List recent evaluations")
    ls.add_argument("--status", choices=["processing", "completed", "error"], default=None)
    ls.add_argument("--limit", type=int, default=20)

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    if args.command == "init-db":
        asyncio.run(cmd_init_db(args))
    elif args.command == "evaluate":
        asyncio.run(cmd_evaluate(args))
    elif args.command == "show":
        asyncio.run(cmd_show(args))
    elif args.command == "list":
        asyncio.run(cmd_list(args))


if __name__ == "__main__":
    main()
