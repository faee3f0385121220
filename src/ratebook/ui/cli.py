from __future__ import annotations

import argparse
import logging
import sys
from datetime import UTC, date, datetime, timedelta
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from ratebook.app import import_json_feed, lookup_rate, reconcile_feeds, sweep_stale
from ratebook.config import ConfigurationError, configure_logging
from ratebook.domain.model import ReconcileMode, SourceTier

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from ratebook.app import ImportReport

log = logging.getLogger(__name__)

_FALLBACK_TIERS = (SourceTier.SECONDARY.value, SourceTier.DERIVED.value)


def _add_import_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--tier",
        choices=_FALLBACK_TIERS,
        default=SourceTier.SECONDARY.value,
        help="Tier stored for rows not backed by an authoritative source (default: %(default)s)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate and count rows without writing anything",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Number of rows per upsert transaction (defaults to config)",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Maintain the ratebook rate store")
    subparsers = parser.add_subparsers(dest="command", required=True)

    reconcile = subparsers.add_parser(
        "reconcile", help="Reconcile two JSON feeds and import the agreed rows"
    )
    reconcile.add_argument("--left", type=str, required=True, help="URL of the first feed")
    reconcile.add_argument("--right", type=str, required=True, help="URL of the second feed")
    reconcile.add_argument(
        "--mode",
        choices=[mode.value for mode in ReconcileMode],
        default=None,
        help="Reconciliation mode (defaults to config)",
    )
    _add_import_options(reconcile)

    import_json = subparsers.add_parser("import-json", help="Import a single JSON feed")
    import_json.add_argument("url", type=str, help="URL of the feed")
    _add_import_options(import_json)

    sweep = subparsers.add_parser(
        "sweep", help="Fail abandoned import runs and idempotency keys"
    )
    sweep.add_argument(
        "--import-minutes",
        type=int,
        help="Minutes without a heartbeat before a running import is failed (defaults to config)",
    )
    sweep.add_argument(
        "--idempotency-minutes",
        type=int,
        help="Minutes a processing idempotency key may stay locked (defaults to config)",
    )
    sweep.add_argument(
        "--limit",
        type=int,
        help="Maximum number of import runs to fail in one sweep",
    )

    rate = subparsers.add_parser("rate", help="Show the rate in force on a day")
    rate.add_argument("--destination", type=str, required=True, help="Destination code")
    rate.add_argument("--product-key", type=str, required=True, help="Product classification")
    rate.add_argument("--partner", type=str, help="Partner code (omit for the MFN rate)")
    rate.add_argument("--rule-kind", type=str, help="Restrict to one rule kind, e.g. mfn")
    rate.add_argument("--on", type=str, help="ISO-8601 date (defaults to today, UTC)")

    return parser.parse_args(list(argv))


def _parse_iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid ISO date: {value}") from exc


def _minutes(value: int | None) -> timedelta | None:
    if value is None:
        return None
    if value < 1:
        raise ValueError("Stale thresholds must be at least one minute")
    return timedelta(minutes=value)


def _validate(args: argparse.Namespace) -> None:
    if getattr(args, "batch_size", None) is not None and args.batch_size < 1:
        raise ValueError("Batch size must be positive")
    if args.command == "sweep":
        _minutes(args.import_minutes)
        _minutes(args.idempotency_minutes)
    if args.command == "rate" and args.on:
        _parse_iso_date(args.on)


def _log_import(report: ImportReport) -> None:
    log.info(
        "Import finished: run=%s, inserted=%s, updated=%s, conflicts=%s, rejected=%s, dry_run=%s",
        report.run_id,
        report.upsert.inserted,
        report.upsert.updated,
        report.conflicts,
        len(report.reconciliation.rejected),
        report.upsert.dry_run,
    )
    for conflict in report.reconciliation.conflicts:
        log.warning("Unresolved %s: %s", conflict.reason, conflict.key)


def _run_command(args: argparse.Namespace) -> None:  # noqa: C901
    if args.command == "reconcile":
        _log_import(
            reconcile_feeds(
                args.left,
                args.right,
                mode=args.mode,
                tier=args.tier,
                dry_run=args.dry_run,
                batch_size=args.batch_size,
            )
        )
    elif args.command == "import-json":
        _log_import(
            import_json_feed(
                args.url,
                tier=args.tier,
                dry_run=args.dry_run,
                batch_size=args.batch_size,
            )
        )
    elif args.command == "sweep":
        report = sweep_stale(
            import_stale_after=_minutes(args.import_minutes),
            idempotency_stale_after=_minutes(args.idempotency_minutes),
            limit=args.limit,
        )
        log.info(
            "Sweep finished: import_runs=%s, idempotency_keys=%s",
            report.import_runs.swept,
            report.idempotency_keys,
        )
    elif args.command == "rate":
        on = _parse_iso_date(args.on) if args.on else datetime.now(UTC).date()
        stored = lookup_rate(
            destination=args.destination,
            product_key=args.product_key,
            on=on,
            partner=args.partner,
            rule_kind=args.rule_kind,
        )
        if stored is None:
            log.info("No rate in force for %s/%s on %s", args.destination, args.product_key, on)
        else:
            record = stored.record
            log.info(
                "%s %s partner=%s rule=%s value=%s currency=%s tier=%s valid=[%s, %s)",
                record.destination,
                record.product_key,
                record.partner or "MFN",
                record.rule_kind,
                record.value,
                record.currency,
                record.source_tier,
                record.effective_from,
                record.effective_to or "open",
            )
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        configure_logging()
        parsed_args = _parse_args(args_list)
        _validate(parsed_args)
    except (ValueError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        _run_command(parsed_args)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
