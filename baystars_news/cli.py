"""
CLI for the news pipeline.

Usage:
    # Collect news from all sources into the raw snapshot
    python -m baystars_news fetch

    # Generate articles from the snapshot and update the index
    python -m baystars_news generate

    # Both stages (also the default with no command)
    python -m baystars_news run

    # Run the pipeline on a cron schedule
    python -m baystars_news serve
"""

import argparse
import asyncio
import logging
import sys

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from baystars_news.config import Settings, get_settings
from baystars_news.jobs import run_fetch, run_generate, run_pipeline

logger = structlog.get_logger()


def configure_logging(settings: Settings) -> None:
    """Route stdlib and structlog output through one handler."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(message)s",
        stream=sys.stderr,
    )

    renderer = (
        structlog.processors.JSONRenderer(ensure_ascii=False)
        if settings.log_json
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


async def cmd_fetch(settings: Settings) -> int:
    records = await run_fetch(settings)
    print(f"Collected {len(records)} records -> {settings.snapshot_path}")
    return 0


async def cmd_generate(settings: Settings) -> int:
    articles = await run_generate(settings)
    print(f"Generated {len(articles)} articles -> {settings.index_path}")
    return 0


async def cmd_run(settings: Settings) -> int:
    articles = await run_pipeline(settings)
    print(f"Generated {len(articles)} articles -> {settings.index_path}")
    return 0


async def scheduled_run(settings: Settings) -> None:
    """Scheduler entry point; a failed run is logged and the next one still fires."""
    try:
        await run_pipeline(settings)
    except Exception:
        logger.exception("Scheduled pipeline run failed")


async def cmd_serve(settings: Settings) -> int:
    scheduler = AsyncIOScheduler()

    # max_instances=1 keeps runs from overlapping on the shared index
    scheduler.add_job(
        scheduled_run,
        CronTrigger(hour=settings.schedule_hour, minute=settings.schedule_minute),
        args=[settings],
        id="news_pipeline",
        name="News Pipeline",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        "Scheduler started",
        hour=settings.schedule_hour,
        minute=settings.schedule_minute,
    )

    print("Press Ctrl+C to stop")
    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        scheduler.shutdown(wait=False)


COMMANDS = {
    "fetch": cmd_fetch,
    "generate": cmd_generate,
    "run": cmd_run,
    "serve": cmd_serve,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="baystars-news",
        description="Collect BayStars news and generate fan-blog articles",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run (default: run)")
    subparsers.add_parser("fetch", help="Fetch all sources into the raw snapshot")
    subparsers.add_parser("generate", help="Generate articles from the snapshot")
    subparsers.add_parser("run", help="Fetch, then generate")
    subparsers.add_parser("serve", help="Run the pipeline on a cron schedule")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # No subcommand runs the whole pipeline once
    if not args.command:
        args.command = "run"

    settings = get_settings()
    configure_logging(settings)

    try:
        return asyncio.run(COMMANDS[args.command](settings))
    except KeyboardInterrupt:
        print("\nShutting down...")
        return 0
    except Exception:
        logger.exception("Pipeline failed", command=args.command)
        return 1


if __name__ == "__main__":
    sys.exit(main())
