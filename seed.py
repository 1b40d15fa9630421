# seed.py: schema and seed data for a fresh event database
"""
Usage:
    python seed.py init
    python seed.py seed-event --name "Expert Forum 2025" --date 2025-11-20 [--zoom URL] [--active]
    python seed.py seed-booths booths.json
    python seed.py seed-staff
    python seed.py import-participants participants.xlsx [--credentials creds.csv]

booths.json is a list of objects:
    {"name": ..., "description": ..., "poster_url": ..., "questions": [...],
     "order": 1, "is_online_only": false, "is_offline_only": false}
"""
import argparse
import json
import logging
import sys

import config
from domain.errors import ForumError
from services import booths_service, events_service, export_service, users_service
from services.upload_service import ingest_participants
from utils.db import get_engine, init_schema
from utils.log import setup_logging

log = logging.getLogger("seed")


def cmd_init(engine, args):
    init_schema(engine)
    log.info("schema ready")


def cmd_seed_event(engine, args):
    ev = events_service.create_or_update_event(
        engine, args.name, args.date, is_active=args.active, zoom_meeting_url=args.zoom,
    )
    log.info("event %s (%s) active=%s", ev.name, ev.id, ev.is_active)


def cmd_seed_booths(engine, args):
    with open(args.file, encoding="utf-8") as fh:
        rows = json.load(fh)
    for i, b in enumerate(rows, start=1):
        booth = booths_service.upsert_booth(
            engine,
            b["name"],
            description=b.get("description"),
            poster_url=b.get("poster_url"),
            questions=b.get("questions", []),
            order=b.get("order", i),
            is_online_only=b.get("is_online_only", False),
            is_offline_only=b.get("is_offline_only", False),
        )
        log.info("booth %s: %s", booth.order, booth.name)


def cmd_seed_staff(engine, args):
    for email in config.ADMIN_EMAILS + config.STAFF_EMAILS:
        if users_service.get_user_by_email(engine, email):
            log.info("account exists: %s", email)
            continue
        u = users_service.create_staff_user(engine, email.split("@")[0].title(), email)
        log.info("created %s account: %s", u.role, u.email)


def cmd_import(engine, args):
    with open(args.file, "rb") as fh:
        summary = ingest_participants(engine, fh, args.file)
    for err in summary["errors"]:
        log.warning("import: %s", err)
    if summary["credentials"]:
        out = args.credentials or export_service.export_filename("participant_credentials")
        with open(out, "wb") as fh:
            fh.write(export_service.credentials_csv(summary["credentials"]))
        log.info("wrote %d credential(s) to %s; hand them out and delete the file", len(summary["credentials"]), out)
    print(f"inserted={summary['inserted']} skipped_existing={summary['skipped_existing']} "
          f"errors={len(summary['errors'])}")



def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description=f"Seed the {config.EVENT_NAME} database")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="create missing tables").set_defaults(func=cmd_init)

    ev = sub.add_parser("seed-event", help="create or update the event row")
    ev.add_argument("--name", default=config.EVENT_NAME)
    ev.add_argument("--date", required=True)
    ev.add_argument("--zoom", default=None, help="Zoom meeting URL for online participants")
    ev.add_argument("--active", action="store_true")
    ev.set_defaults(func=cmd_seed_event)

    bo = sub.add_parser("seed-booths", help="upsert booths from a JSON file")
    bo.add_argument("file")
    bo.set_defaults(func=cmd_seed_booths)

    sub.add_parser("seed-staff", help="create ADMIN_EMAILS / STAFF_EMAILS accounts").set_defaults(func=cmd_seed_staff)

    im = sub.add_parser("import-participants", help="import participants from .xlsx/.csv")
    im.add_argument("file")
    im.add_argument("--credentials", default=None,
                    help="CSV to write generated passwords to (default participant_credentials_<timestamp>.csv)")
    im.set_defaults(func=cmd_import)
    return p


def main(argv=None) -> int:
    setup_logging()
    args = build_parser().parse_args(argv)
    engine = get_engine()
    try:
        args.func(engine, args)
    except ForumError as e:
        log.error("%s", e.message)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
