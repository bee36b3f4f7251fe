from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

import uvloop
from loguru import logger

from app.core.config import load_settings
from app.core.logging import setup_logging
from app.db import create_session_factory, session_scope
from app.services import event_flow
from app.services.assignment import AssignmentInvariantViolation
from app.services.notifications import Notifier, build_provider, manual_notification_report
from app.services.submission import EventSubmission, SubmissionError


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a Secret Santa event and notify participants.")
    parser.add_argument("submission", type=Path, help="JSON file with the event and its participants")
    parser.add_argument("--seed", type=int, default=None, help="seed the shuffle for a reproducible draw")
    parser.add_argument("--no-email", action="store_true", help="store assignments without sending email")
    parser.add_argument(
        "--manual-report",
        action="store_true",
        help="print the participants whose email failed, with their receivers",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_path)
    session_factory = create_session_factory(settings.database_url, create_schema=True)

    submission = EventSubmission.from_dict(json.loads(args.submission.read_text(encoding="utf-8")))

    with session_scope(session_factory) as session:
        created = event_flow.create_event(session, submission)
        event_flow.assign_event(session, created.event, seed=args.seed)
        event = created.event

    logger.info("Event {name} ({id}) is ready", name=event.name, id=event.id)

    if args.no_email:
        return 0
    if not settings.email_configured:
        logger.warning(
            "Email provider {provider} is not configured; skipping notifications",
            provider=settings.email_provider,
        )
        return 0

    notifier = Notifier(build_provider(settings), delay_seconds=settings.email_send_delay)
    report = await event_flow.notify_event(session_factory, event.id, notifier)

    if report.failed and args.manual_report:
        print(manual_notification_report(report, event))
    return 0 if report.all_participants_notified else 2


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        return asyncio.run(run(args))
    except SubmissionError as exc:
        for error in exc.errors:
            logger.error(error)
        return 1
    except AssignmentInvariantViolation:
        logger.exception("Assignment generation failed")
        print("Assignment generation failed, please retry.", file=sys.stderr)
        return 1


if __name__ == "__main__":
    if not getattr(asyncio, "debug", False):
        uvloop.install()

    sys.exit(main())
