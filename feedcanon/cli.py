"""Minimal CLI entrypoint for feedcanon."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Any
from typing import Sequence
from uuid import uuid4

from core.canonicalize import Canonicalizer
from core.config import load_tiers
from core.defaults import COMPARISON_TIER, DEFAULT_STRIPPED_PARAMS, DEFAULT_TIERS, HREF_TIER
from core.equivalent import are_equivalent
from core.errors import ConfigurationError
from core.models import Tier
from core.structured_logging import emit_json_event
from fetcher import HttpFetcher
from quality.candidates import generate_candidates
from quality.urlnorm import normalize_url, resolve_url
from storage import SQLiteFeedStore


def _resolve_command_run_id(args: argparse.Namespace) -> str:
    """Resolve run_id from CLI args or create one for command-level tracing."""
    explicit = getattr(args, "run_id", None)
    if explicit:
        return str(explicit)
    return str(uuid4())


def _emit_cli_event(
    event_type: str,
    *,
    run_id: str,
    command: str,
    **payload: Any,
) -> str:
    """Emit one structured CLI event line with standard fields."""
    return emit_json_event(
        event_type=event_type,
        run_id=run_id,
        command=command,
        **payload,
    )


def _tiers_from_args(args: argparse.Namespace) -> tuple[Tier, ...]:
    if getattr(args, "tiers", None):
        return load_tiers(args.tiers)
    return DEFAULT_TIERS


def _strip_params_from_args(args: argparse.Namespace) -> tuple[str, ...]:
    return tuple(DEFAULT_STRIPPED_PARAMS) + tuple(getattr(args, "strip_param", None) or ())


def _require_url(value: str) -> str:
    resolved = resolve_url(value)
    if resolved is None:
        raise ValueError(f"Not an absolute http(s) URL: {value}")
    return resolved


def _cmd_canonicalize(args: argparse.Namespace) -> int:
    """Canonicalize one feed URL, optionally backed by a SQLite store."""
    run_id = _resolve_command_run_id(args)
    store = SQLiteFeedStore(args.db) if args.db else None
    fetcher = HttpFetcher(log_fetches=not args.quiet_fetches, run_id=run_id)
    canonicalizer = Canonicalizer(
        fetch=fetcher,
        exists=store.exists if store else None,
        tiers=_tiers_from_args(args),
        strip_params=_strip_params_from_args(args),
    )
    result = asyncio.run(canonicalizer.canonicalize(args.url, run_id=run_id))

    if store is not None:
        store.record(args.url, result)
        store.save_fetch_logs(fetcher.fetch_logs, run_id=run_id)

    _emit_cli_event(
        "cli_canonicalize_completed",
        run_id=run_id,
        command="canonicalize",
        input_url=args.url,
        url=result.url,
        method=result.method.value,
        reason=result.reason.value,
        candidates=result.candidates,
        fetches=len(fetcher.fetch_logs),
        db=str(args.db) if args.db else None,
    )
    return 0


def _cmd_candidates(args: argparse.Namespace) -> int:
    """Print the ordered candidate list without touching the network."""
    run_id = _resolve_command_run_id(args)
    candidates = generate_candidates(
        _require_url(args.url),
        tiers=_tiers_from_args(args),
        strip_params=_strip_params_from_args(args),
    )
    _emit_cli_event(
        "cli_candidates_completed",
        run_id=run_id,
        command="candidates",
        url=args.url,
        candidates=candidates,
    )
    return 0


def _cmd_normalize(args: argparse.Namespace) -> int:
    """Normalize one URL with a named tier."""
    run_id = _resolve_command_run_id(args)
    available = {tier.name: tier for tier in (*_tiers_from_args(args), HREF_TIER, COMPARISON_TIER)}
    tier = available.get(args.tier)
    if tier is None:
        names = ", ".join(sorted(available))
        raise ConfigurationError(f"Unknown tier {args.tier!r} (available: {names})")

    normalized = normalize_url(_require_url(args.url), tier, _strip_params_from_args(args))
    _emit_cli_event(
        "cli_normalize_completed",
        run_id=run_id,
        command="normalize",
        url=args.url,
        tier=tier.name,
        normalized=normalized,
    )
    return 0


def _cmd_equivalent(args: argparse.Namespace) -> int:
    """Check whether two URLs serve the same feed; exit 1 when they do not."""
    run_id = _resolve_command_run_id(args)
    result = asyncio.run(are_equivalent(args.url1, args.url2, fetch=HttpFetcher(log_fetches=False)))
    _emit_cli_event(
        "cli_equivalent_completed",
        run_id=run_id,
        command="equivalent",
        url1=args.url1,
        url2=args.url2,
        equivalent=result.equivalent,
        method=result.method,
    )
    return 0 if result.equivalent else 1


def _cmd_validate_tiers(args: argparse.Namespace) -> int:
    """Validate a JSON tier file against the tier schema."""
    run_id = _resolve_command_run_id(args)
    path = Path(args.file)
    tiers = load_tiers(path)
    _emit_cli_event(
        "cli_validate_tiers_completed",
        run_id=run_id,
        command="validate-tiers",
        file=str(path),
        tiers=[tier.name for tier in tiers],
    )
    return 0


def _add_tier_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--tiers", help="JSON tier file replacing the default tiers")
    parser.add_argument(
        "--strip-param",
        action="append",
        default=[],
        help="Extra query parameter to strip (repeatable)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Create argument parser for the feedcanon CLI."""
    parser = argparse.ArgumentParser(
        prog="feedcanon",
        description="Find the canonical URL of a feed",
    )
    parser.add_argument("--version", action="version", version="feedcanon 0.1.0")

    subparsers = parser.add_subparsers(dest="command")

    canonicalize_parser = subparsers.add_parser(
        "canonicalize",
        help="Fetch a feed and select its cleanest equivalent URL",
    )
    canonicalize_parser.add_argument("url", help="Feed URL")
    canonicalize_parser.add_argument("--db", help="SQLite DB used as existence check and result store")
    canonicalize_parser.add_argument("--run-id", help="Optional explicit run ID")
    canonicalize_parser.add_argument(
        "--quiet-fetches",
        action="store_true",
        help="Do not emit one log line per HTTP request",
    )
    _add_tier_options(canonicalize_parser)
    canonicalize_parser.set_defaults(func=_cmd_canonicalize)

    candidates_parser = subparsers.add_parser(
        "candidates",
        help="List candidate URLs in test order (no network)",
    )
    candidates_parser.add_argument("url", help="Feed URL")
    candidates_parser.add_argument("--run-id", help="Optional explicit run ID for logging")
    _add_tier_options(candidates_parser)
    candidates_parser.set_defaults(func=_cmd_candidates)

    normalize_parser = subparsers.add_parser(
        "normalize",
        help="Normalize one URL with a named tier (no network)",
    )
    normalize_parser.add_argument("url", help="URL to normalize")
    normalize_parser.add_argument("--tier", default="clean", help="Tier name (default: clean)")
    normalize_parser.add_argument("--run-id", help="Optional explicit run ID for logging")
    _add_tier_options(normalize_parser)
    normalize_parser.set_defaults(func=_cmd_normalize)

    equivalent_parser = subparsers.add_parser(
        "equivalent",
        help="Check whether two URLs serve the same feed",
    )
    equivalent_parser.add_argument("url1", help="First feed URL")
    equivalent_parser.add_argument("url2", help="Second feed URL")
    equivalent_parser.add_argument("--run-id", help="Optional explicit run ID for logging")
    equivalent_parser.set_defaults(func=_cmd_equivalent)

    validate_parser = subparsers.add_parser(
        "validate-tiers",
        help="Validate a JSON tier file",
    )
    validate_parser.add_argument("file", help="Path to tier JSON file")
    validate_parser.set_defaults(func=_cmd_validate_tiers)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Execute CLI and return process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 0

    try:
        return int(args.func(args))
    except Exception as exc:
        run_id = _resolve_command_run_id(args)
        _emit_cli_event(
            "cli_error",
            run_id=run_id,
            command=str(getattr(args, "command", "unknown")),
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return 1


def cli() -> None:
    """Console-script entrypoint."""
    raise SystemExit(main())


if __name__ == "__main__":
    raise SystemExit(main())
