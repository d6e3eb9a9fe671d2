import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from applicant_filters import config
from applicant_filters.formatter import FilterFormatter
from applicant_filters.kinds import classify_filter_kind
from applicant_filters.merger import merge_fields
from applicant_filters.models import FilterDescriptor
from applicant_filters.predicate import apply_filter_store
from applicant_filters.records import ApplicantRecord
from applicant_filters.storage import MemoryStorage, SqliteStorage
from applicant_filters.store import FilterStore

logger = logging.getLogger(__name__)

# Envelope keys REST collaborators wrap record lists in
LIST_ENVELOPE_KEYS = ("data", "items", "rows", "results")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def load_records(path: str) -> list[Any]:
    """
    Read a JSON file holding a list of records, either bare or wrapped
    in a {"data": [...]}-style envelope.
    """
    with Path(path).open(encoding="utf-8") as f:
        payload = json.load(f)
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in LIST_ENVELOPE_KEYS:
            if isinstance(payload.get(key), list):
                return payload[key]
    raise ValueError(f"{path} does not contain a list of records")


def cmd_fields(args: argparse.Namespace, store: FilterStore) -> int:
    postings = load_records(args.jobs)
    # No --job given: list the fields of every posting
    selected = args.job or None
    fields = merge_fields(postings, selected)
    if not fields:
        print("No custom fields found for selected jobs.")
        return 0
    for field in fields:
        print(FilterFormatter.format_field(field, classify_filter_kind(field)))
    return 0


def cmd_filter(args: argparse.Namespace, store: FilterStore) -> int:
    postings = load_records(args.jobs)
    applicants = load_records(args.applicants)
    visible = apply_filter_store(
        applicants,
        store,
        postings,
        status_filter=args.status or None,
        privileged=args.privileged,
    )
    logger.info(f"{len(visible)} of {len(applicants)} applicants match {len(store)} filters.")
    for applicant in visible:
        print(ApplicantRecord.wrap(applicant).id or "")
    return 0


def cmd_show(args: argparse.Namespace, store: FilterStore) -> int:
    if store.selected_company_ids():
        print(f"Companies: {', '.join(store.selected_company_ids())}")
    if store.selected_job_ids():
        print(f"Jobs: {', '.join(store.selected_job_ids())}")
    for descriptor in store.filters:
        print(FilterFormatter.format_descriptor(descriptor))
    if store.active_filter_count() == 0:
        print("No active filters.")
    return 0


def cmd_add(args: argparse.Namespace, store: FilterStore) -> int:
    descriptor = FilterDescriptor.from_raw(json.loads(args.descriptor))
    if descriptor is None:
        logger.error("Invalid filter descriptor.")
        return 1
    store.update(descriptor.field_id, lambda _: descriptor)
    print(FilterFormatter.format_descriptor(descriptor))
    return 0


def cmd_remove(args: argparse.Namespace, store: FilterStore) -> int:
    store.remove(args.field_id)
    return 0


def cmd_select(args: argparse.Namespace, store: FilterStore) -> int:
    if args.company is not None:
        store.select_companies(args.company)
    if args.job is not None:
        store.select_jobs(args.job)
    return cmd_show(args, store)


def cmd_clear(args: argparse.Namespace, store: FilterStore) -> int:
    store.clear()
    logger.info("Cleared all filters.")
    return 0


def cmd_revert(args: argparse.Namespace, store: FilterStore) -> int:
    store.revert()
    return cmd_show(args, store)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="applicant-filters",
        description="Merge job custom fields and filter applicants by their answers.",
    )
    parser.add_argument(
        "--db",
        default=None,
        metavar="PATH",
        help="SQLite file holding the saved filter state (overrides FILTER_STATE_DB_PATH).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    fields = sub.add_parser("fields", help="List merged custom fields and their filter kinds.")
    fields.add_argument("jobs", help="JSON file with job postings.")
    fields.add_argument("--job", action="append", metavar="ID", help="Restrict to a job id.")
    fields.set_defaults(handler=cmd_fields)

    filt = sub.add_parser("filter", help="Print ids of applicants matching the saved filters.")
    filt.add_argument("jobs", help="JSON file with job postings.")
    filt.add_argument("applicants", help="JSON file with applicants.")
    filt.add_argument("--status", action="append", metavar="STATUS", help="Allowed status.")
    filt.add_argument(
        "--privileged", action="store_true", help="Allow trashed applicants to be listed."
    )
    filt.set_defaults(handler=cmd_filter)

    sub.add_parser("show", help="Show the saved filters.").set_defaults(handler=cmd_show)

    add = sub.add_parser("add", help="Add or replace a filter from a JSON descriptor.")
    add.add_argument("descriptor", help='e.g. \'{"fieldId": "__has_cv", "type": "hasCV", "value": true}\'')
    add.set_defaults(handler=cmd_add)

    remove = sub.add_parser("remove", help="Remove the filter of a field id.")
    remove.add_argument("field_id")
    remove.set_defaults(handler=cmd_remove)

    select = sub.add_parser("select", help="Set the company / job selection.")
    select.add_argument("--company", action="append", metavar="ID")
    select.add_argument("--job", action="append", metavar="ID")
    select.set_defaults(handler=cmd_select)

    sub.add_parser("clear", help="Remove all filters and selections.").set_defaults(
        handler=cmd_clear
    )
    sub.add_parser("revert", help="Invert presence and birth-year filters.").set_defaults(
        handler=cmd_revert
    )

    return parser.parse_args(argv)


def cli(argv: list[str] | None = None) -> None:
    """CLI entry point for the package."""
    args = parse_args(argv)

    # Set up logging once, in the application entry point only
    try:
        level = config.LOG_LEVEL
    except ValueError as e:
        logging.basicConfig(format=LOG_FORMAT)
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)
    logging.basicConfig(format=LOG_FORMAT, level=level)

    try:
        db_path = args.db or config.FILTER_STATE_DB_PATH
        with SqliteStorage(db_path) as local:
            store = FilterStore.load(MemoryStorage(), local, state_key=config.FILTER_STATE_KEY)
            code = args.handler(args, store)
    except (OSError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        sys.exit(1)

    if code:
        sys.exit(code)


if __name__ == "__main__":
    cli()
