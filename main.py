"""
Command line entry point for the Campaign Engine

Usage:
    python main.py --snapshot sample_data/storefront_snapshot.json storefront --profile mid-credit
    python main.py --snapshot sample_data/storefront_snapshot.json explain --profile high-credit
    python main.py --snapshot sample_data/storefront_snapshot.json matrix --in profiles.csv --out offers.csv
    python main.py --snapshot sample_data/storefront_snapshot.json summary
"""

import argparse
import json
import sys
import time
from typing import Dict, List, Optional

import pandas as pd
from loguru import logger

from campaign_engine import PreviewMatrix, StorefrontEngine, load_snapshot
from campaign_engine.config import get_config, setup_logging
from campaign_engine.exceptions import CampaignEngineError


DEFAULT_SNAPSHOT = "sample_data/storefront_snapshot.json"


def parse_flag(text: str) -> Dict[str, bool]:
    """Parse a name=true|false feature flag override"""
    name, sep, value = text.partition('=')
    value = value.strip().lower()
    if not sep or not name.strip() or value not in ('true', 'false'):
        raise argparse.ArgumentTypeError(f"Expected name=true|false, got '{text}'")
    return {name.strip(): value == 'true'}


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2))


def _build_engine(args: argparse.Namespace) -> StorefrontEngine:
    snapshot = load_snapshot(args.snapshot)
    return StorefrontEngine(snapshot)


def _cmd_storefront(args: argparse.Namespace) -> int:
    engine = _build_engine(args)
    profile = engine.require_profile(args.profile) if args.profile else None

    flags: Dict[str, bool] = {}
    for override in args.flag or []:
        flags.update(override)

    storefront = engine.build_storefront(profile, preview_mode=args.mode, feature_flags=flags)
    _print_json(storefront.model_dump(by_alias=True, mode="json"))
    return 0


def _cmd_explain(args: argparse.Namespace) -> int:
    engine = _build_engine(args)
    profile = engine.require_profile(args.profile)
    explanations = engine.explain(profile)
    _print_json([e.model_dump(by_alias=True, mode="json") for e in explanations])
    return 0


def _cmd_matrix(args: argparse.Namespace) -> int:
    engine = _build_engine(args)

    start_time = time.time()
    try:
        df = pd.read_csv(args.input)
    except (OSError, ValueError) as e:
        logger.error(f"Error reading CSV {args.input}: {e}")
        return 1
    logger.info(f"Loaded {len(df)} profiles from {args.input}")

    result_df = PreviewMatrix(engine, preview_mode=args.mode).process_dataframe(df)

    try:
        result_df.to_csv(args.out, index=False)
    except OSError as e:
        logger.error(f"Error saving output {args.out}: {e}")
        return 1

    logger.info(f"Saved {len(result_df)} rows to {args.out} in {time.time() - start_time:.2f} seconds")
    return 0


def _cmd_summary(args: argparse.Namespace) -> int:
    engine = _build_engine(args)
    _print_json(engine.get_snapshot_summary())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="campaign-engine", description="Campaign rule evaluation and storefront preview")
    parser.add_argument("--snapshot", default=DEFAULT_SNAPSHOT, help="Snapshot JSON file or directory")
    parser.add_argument("--log-level", default=None, help="Logging level (default from configuration)")
    sub = parser.add_subparsers(dest="command", required=True)

    storefront = sub.add_parser("storefront", help="Print the storefront as JSON")
    storefront.add_argument("--profile", help="Member profile id; omit for the no-profile storefront")
    storefront.add_argument("--mode", choices=["live", "demo"], default=None, help="Preview mode")
    storefront.add_argument("--flag", type=parse_flag, action="append", help="Feature flag override name=true|false")
    storefront.set_defaults(func=_cmd_storefront)

    explain = sub.add_parser("explain", help="Explain every campaign-product decision for a profile")
    explain.add_argument("--profile", required=True, help="Member profile id")
    explain.set_defaults(func=_cmd_explain)

    matrix = sub.add_parser("matrix", help="Preview offers for a CSV of member profiles")
    matrix.add_argument("--in", dest="input", required=True, help="Input profiles CSV")
    matrix.add_argument("--out", required=True, help="Output offers CSV")
    matrix.add_argument("--mode", choices=["live", "demo"], default=None, help="Preview mode")
    matrix.set_defaults(func=_cmd_matrix)

    summary = sub.add_parser("summary", help="Print snapshot counts")
    summary.set_defaults(func=_cmd_summary)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = get_config()

    try:
        setup_logging(args.log_level or config.log_level, config.log_file, config.log_rotation, config.log_retention)
        return int(args.func(args))
    except CampaignEngineError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
