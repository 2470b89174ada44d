"""
Check one label text file, or a CSV batch of labels, and print the result as JSON.
Usage: from project root, run:
    python -m scripts.check_label label.txt --category toys --jurisdictions US UK
    python -m scripts.check_label labels.csv --batch
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

_root = Path(__file__).resolve().parent.parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

import pandas as pd

from labelcheck.batch import run_batch
from labelcheck.config import load_config
from labelcheck.pipeline import run_pipeline
from labelcheck.rules.engine import ComplianceEngine


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Check product label text against marketplace labelling rules.")
    p.add_argument("path", type=Path, nargs="?", help="label text file, or CSV with --batch")
    p.add_argument("--category", help="Toys, Baby Products or Cosmetics (aliases accepted)")
    p.add_argument("--jurisdictions", nargs="+", default=[], help="USA, UK, Germany (aliases accepted)")
    p.add_argument("--batch", action="store_true", help="treat path as a CSV of labels")
    p.add_argument("--settings", type=Path, help="alternative settings.yaml")
    p.add_argument("--options", action="store_true", help="print available categories and jurisdictions and exit")
    p.add_argument("-v", "--verbose", action="store_true")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    engine = ComplianceEngine(config=load_config(args.settings))

    if args.options:
        print(json.dumps(engine.available_options(), indent=2))
        return 0

    if args.path is None:
        print("a label text file or CSV path is required", file=sys.stderr)
        return 2

    if args.batch:
        df = run_batch(pd.read_csv(args.path), engine=engine)
        print(df.to_json(orient="records", indent=2))
        return 0

    if not args.category or not args.jurisdictions:
        print("--category and --jurisdictions are required for a single label", file=sys.stderr)
        return 2

    text = args.path.read_text(encoding="utf-8")
    result = run_pipeline(text, args.category, args.jurisdictions, engine=engine)
    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 1 if result.get("error") else 0


if __name__ == "__main__":
    sys.exit(main())
