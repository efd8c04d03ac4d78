from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .config import load_config
from .errors import ConfigurationError
from .logging_config import configure_logging
from .runner import report, resolve_date_range, run_extraction
from .util.dates import format_date


logger = logging.getLogger("bank_retentions")

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_SESSION_FAILED = 3


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="bank_retentions",
        description="Total the 'Ing. Brutos S/ Cred' retentions of one online banking account for a date range.",
        epilog=(
            "Examples:\n"
            "  bank_retentions --from 01/11/2025 --to 30/11/2025\n"
            "  bank_retentions --from 15/11/2025\n"
            "  bank_retentions            (previous calendar month)"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument(
        "--env-file",
        default=".env",
        help="Path to a dotenv file (default: .env). If missing, env vars must already be set.",
    )
    p.add_argument("--config", default="config.yaml", help="Optional YAML config (default: config.yaml)")
    p.add_argument(
        "--from",
        dest="date_from",
        default="",
        metavar="DD/MM/YYYY",
        help="Start date (default: first day of previous month)",
    )
    p.add_argument(
        "--to",
        dest="date_to",
        default="",
        metavar="DD/MM/YYYY",
        help="End date (default: last day of previous month)",
    )
    p.add_argument("--headful", action="store_true", help="Run browser headful (debug)")
    p.add_argument("--slowmo-ms", type=int, default=0, help="Playwright slow motion in milliseconds (debug).")
    p.add_argument("--step-debug", action="store_true", help="Log each navigation step and save screenshots under the debug dir.")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    env_path = Path(args.env_file)
    if env_path.exists():
        load_dotenv(env_path)

    # Default logging: can be overridden once config is loaded.
    configure_logging(level=os.getenv("LOG_LEVEL", "INFO"))

    try:
        cfg = load_config(args.config)
        configure_logging(level=cfg.logging.level, file_path=cfg.logging.file_path or None)

        # CLI flags win over configured bounds.
        date_range = resolve_date_range(
            args.date_from or cfg.search.date_from,
            args.date_to or cfg.search.date_to,
        )
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    logger.info("Date Range: %s to %s", format_date(date_range.start), format_date(date_range.end))

    t0 = time.time()
    try:
        run = run_extraction(
            cfg,
            date_range,
            headless=not args.headful,
            slow_mo_ms=args.slowmo_ms,
            step_debug=args.step_debug,
        )
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except Exception:
        # Browser launch problems and the like: report, don't traceback out of the process.
        logger.exception("Run failed before the portal session could complete")
        return EXIT_SESSION_FAILED

    logger.info("Run finished (seconds=%.2f ok=%s)", time.time() - t0, run.ok)
    report(run)
    return EXIT_OK if run.ok else EXIT_SESSION_FAILED
