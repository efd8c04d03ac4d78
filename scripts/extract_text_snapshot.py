#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path


def _ensure_src_on_path() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    src = repo_root / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))


def _read_text(path: str) -> str:
    p = Path(path)
    if not p.exists():
        raise SystemExit(f"File not found: {p}")
    return p.read_text(encoding="utf-8", errors="replace")


def main(argv: list[str] | None = None) -> int:
    _ensure_src_on_path()

    from bank_retentions.errors import ConfigurationError
    from bank_retentions.extractor import DEFAULT_RETENTION_PATTERN, extract, scan_triples
    from bank_retentions.runner import resolve_date_range

    p = argparse.ArgumentParser(
        prog="extract_text_snapshot",
        description=(
            "Run the retention extractor over a saved movement list text snapshot (e.g. data/debug/*.txt).\n"
            "This is intended for debugging extraction regressions offline (no Playwright, no secrets)."
        ),
    )
    p.add_argument("--file", required=True, help="Path to a debug .txt file captured from the movements page")
    p.add_argument("--from", dest="date_from", default="", help="Start date DD/MM/YYYY (default: previous month)")
    p.add_argument("--to", dest="date_to", default="", help="End date DD/MM/YYYY (default: previous month)")
    p.add_argument("--pattern", default=DEFAULT_RETENTION_PATTERN, help="Description regex (case-insensitive)")
    p.add_argument("--all", action="store_true", help="Dump every scanned triple instead of filtering")
    p.add_argument("--out", default="", help="Optional output JSON path (otherwise prints to stdout)")
    args = p.parse_args(argv)

    body_text = _read_text(args.file)

    if args.all:
        payload = {
            "triples": [
                {"date": t.date_text, "description": t.description_text, "amount": t.amount_text}
                for t in scan_triples(body_text)
            ]
        }
    else:
        try:
            date_range = resolve_date_range(args.date_from, args.date_to)
        except ConfigurationError as e:
            raise SystemExit(str(e))
        result = extract(body_text, date_range, args.pattern)
        payload = {"date_range": date_range.model_dump(mode="json"), **result.model_dump(mode="json")}

    out_json = json.dumps(payload, indent=2, sort_keys=False, ensure_ascii=False)
    if args.out:
        Path(args.out).write_text(out_json, encoding="utf-8")
    else:
        print(out_json)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
