"""Command line front end for the enrichment pipeline and visit tracker."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from tqdm import tqdm

from .. import get_version
from ..db import create_engine_from_settings, create_session_maker, init_database
from ..enrichment import EnrichmentError, IPEnrichmentPipeline
from ..enrichment.factory import create_enrichment_pipeline
from ..settings import load_database_settings, load_enrichment_settings
from ..status_emitter import StatusEmitter
from ..tracking import VisitTracker
from ..utils.config import load_config_file

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_STORAGE_ERROR = 1
EXIT_INVALID_INPUT = 2


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")


def _read_ip_file(path: Path) -> list[str]:
    """Return IPs from ``path``, one per line, skipping blanks and # comments."""
    ips = []
    for line in path.read_text(encoding="utf-8").splitlines():
        value = line.split("#", 1)[0].strip()
        if value:
            ips.append(value)
    return ips


def _emit(payload: Any, output: str, text_lines: Iterable[str]) -> None:
    if output == "json":
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        for line in text_lines:
            print(line)


def _describe(ip: str, result_dict: dict[str, Any]) -> str:
    if result_dict["status"] == "filtered":
        return f"{ip}: filtered ({result_dict['reason']})"
    company = result_dict["data"]["company"]
    return f"{ip}: success - {company['company_name']} [{company['domain']}] (source: {company['enrichment_source']})"


def _record_status(pipeline: IPEnrichmentPipeline, status_dir: Optional[str]) -> None:
    if not status_dir:
        return
    emitter = StatusEmitter("enrichment", status_dir)
    emitter.record_metrics(pipeline.get_stats())
    emitter.record_cache_stats(pipeline.cache_stats())


def _cmd_enrich(pipeline: IPEnrichmentPipeline, args: argparse.Namespace) -> int:
    ips = list(args.ips)
    if args.input_file:
        ips.extend(_read_ip_file(Path(args.input_file)))
    if not ips:
        print("No IP addresses given", file=sys.stderr)
        return EXIT_INVALID_INPUT

    show_progress = bool(args.input_file) and not args.no_progress
    verdicts = pipeline.bulk_enrich(tqdm(ips, desc="Enriching IPs", disable=not show_progress))
    results = {ip: verdict.to_dict() for ip, verdict in verdicts.items()}

    _emit(results, args.output, (_describe(ip, result) for ip, result in results.items()))
    return EXIT_OK


def _cmd_stats(pipeline: IPEnrichmentPipeline, args: argparse.Namespace) -> int:
    for ip in args.warm:
        pipeline.enrich(ip)
    stats = pipeline.cache_stats()
    payload = {"cache": stats.to_dict(include_entries=args.entries), "pipeline": pipeline.get_stats()}
    lines = [
        f"Total entries: {stats.total_entries}",
        f"Active entries: {stats.active_entries}",
        f"Expired entries: {stats.expired_entries}",
        f"Approximate memory: {stats.approximate_memory_bytes} bytes",
        f"Hit rate: {stats.hit_rate:.2%}",
    ]
    if args.entries:
        lines.extend(
            f"  - {info.key} (expired={info.expired})" for info in stats.entries
        )
    _emit(payload, args.output, lines)
    return EXIT_OK


def _cmd_clear(pipeline: IPEnrichmentPipeline, args: argparse.Namespace) -> int:
    for ip in args.warm:
        pipeline.enrich(ip)
    removed = pipeline.cache_clear()
    _emit({"cleared": removed}, args.output, [f"Cleared {removed} cache entries"])
    return EXIT_OK


def _cmd_domains(pipeline: IPEnrichmentPipeline, args: argparse.Namespace) -> int:
    domains = sorted(pipeline.get_available_enrichment_domains())
    _emit({"domains": domains, "count": len(domains)}, args.output, domains)
    return EXIT_OK


def _cmd_track(pipeline: IPEnrichmentPipeline, args: argparse.Namespace, file_config: dict[str, Any]) -> int:
    enrichment = pipeline.enrich(args.ip) if args.ip else None

    db_settings = load_database_settings(config={"url": args.db_url}, file_config=file_config)
    try:
        engine = create_engine_from_settings(db_settings)
        init_database(engine)
        tracker = VisitTracker(create_session_maker(engine))
        outcome = tracker.record_visit(
            ip_address=args.ip,
            session_id=args.session_id,
            page_urls=args.page_url,
            duration=args.duration,
            user_agent=args.user_agent,
            enrichment=enrichment,
        )
    except SQLAlchemyError as exc:
        logger.error("Failed to store visit: %s", exc)
        print(f"Failed to store visit: {exc}", file=sys.stderr)
        return EXIT_STORAGE_ERROR

    payload = outcome.to_dict()
    if enrichment is not None:
        payload["enrichment"] = enrichment.to_dict()
    _emit(
        payload,
        args.output,
        [f"{outcome.status}: {outcome.record_id} ({outcome.session_count} sessions)"],
    )
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for the ``visitorintel`` command."""
    parser = argparse.ArgumentParser(prog="visitorintel", description="Visitor IP enrichment")
    parser.add_argument("--config", help="Path to visitorintel.toml")
    parser.add_argument("--output", choices=("json", "text"), default="text")
    parser.add_argument("--status-dir", help="Write enrichment status JSON to this directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")

    sub = parser.add_subparsers(dest="command", required=True)

    enrich = sub.add_parser("enrich", help="Enrich one or more IP addresses")
    enrich.add_argument("ips", nargs="*", help="IP addresses")
    enrich.add_argument("--input-file", help="File with one IP per line (# comments allowed)")
    enrich.add_argument("--no-progress", action="store_true", help="Disable the progress bar")

    stats = sub.add_parser(
        "stats", help="Show cache statistics for this run (each invocation starts with an empty cache)"
    )
    stats.add_argument("--warm", nargs="*", default=[], help="IPs to enrich before reporting")
    stats.add_argument("--entries", action="store_true", help="Include per-entry metadata")

    clear = sub.add_parser("clear", help="Clear this run's cache; reports 0 unless --warm populated it first")
    clear.add_argument("--warm", nargs="*", default=[], help="IPs to enrich before clearing")

    sub.add_parser("domains", help="List domains with company enrichment data")

    track = sub.add_parser("track", help="Enrich an IP and record a visitor session")
    track.add_argument("--session-id", required=True, help="Client session identifier")
    track.add_argument("--ip", help="Visitor IP address")
    track.add_argument("--page-url", action="append", default=[], help="Visited page (repeatable)")
    track.add_argument("--duration", help="Session duration in milliseconds")
    track.add_argument("--user-agent", help="Client user agent")
    track.add_argument("--db-url", help="Database URL (overrides config and environment)")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return an exit status."""
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    _configure_logging(args.verbose)

    file_config = load_config_file(Path(args.config) if args.config else None)

    try:
        settings = load_enrichment_settings(file_config=file_config["enrichment"])
        pipeline = create_enrichment_pipeline(settings)

        if args.command == "enrich":
            status = _cmd_enrich(pipeline, args)
        elif args.command == "stats":
            status = _cmd_stats(pipeline, args)
        elif args.command == "clear":
            status = _cmd_clear(pipeline, args)
        elif args.command == "domains":
            status = _cmd_domains(pipeline, args)
        else:
            status = _cmd_track(pipeline, args, file_config["database"])
    except (EnrichmentError, OSError, ValueError) as exc:
        logger.error("Command %s failed: %s", args.command, exc)
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_INVALID_INPUT

    _record_status(pipeline, args.status_dir)
    return status


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
