"""Jurisdiction engine command-line entry point.

Usage:
    python -m jurisdiction_engine.main 90210                  # Resolve one ZIP
    python -m jurisdiction_engine.main 90210 --include-bill-data
    python -m jurisdiction_engine.main --health-check         # Source status
    python -m jurisdiction_engine.main --warm-up 90210 95814  # Pre-populate cache

Exit codes: 0 success, 1 hard failure (try again), 2 invalid input.
"""

import argparse
import asyncio
import json
import logging
import sys

from jurisdiction_engine.config import load_config
from jurisdiction_engine.engine import ResolutionEngine
from jurisdiction_engine.exceptions import HardFailureError, ValidationError

logger = logging.getLogger(__name__)


async def run_resolve(config: dict, zip_code: str, options: dict, warm_up: list[str]) -> dict:
    async with ResolutionEngine(config) as engine:
        if warm_up:
            await engine.warm_up(warm_up)
        response = await engine.resolve(zip_code, options)
        payload = response.model_dump(mode="json")
        payload["diagnostics"] = engine.diagnostics()["metrics"]
        return payload


async def run_warm_up(config: dict, zips: list[str]) -> dict:
    async with ResolutionEngine(config) as engine:
        warmed = await engine.warm_up(zips)
        return {"warmed": warmed, "requested": len(zips), "diagnostics": engine.diagnostics()}


def main():
    parser = argparse.ArgumentParser(
        description="Jurisdiction Engine - ZIP code to jurisdiction and representative roster"
    )
    parser.add_argument("zip_code", nargs="?", help="Five-digit ZIP code to resolve")
    parser.add_argument("--include-voting-records", action="store_true",
                        help="Include voting-record enrichment where available")
    parser.add_argument("--include-bill-data", action="store_true",
                        help="Include recently sponsored legislation")
    parser.add_argument("--include-committee-info", action="store_true",
                        help="Include committee assignments where available")
    parser.add_argument("--config", type=str, help="Path to an engine config JSON file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--health-check", action="store_true",
                        help="Report source availability and exit")
    parser.add_argument("--warm-up", nargs="+", metavar="ZIP",
                        help="Pre-populate the cache for these ZIP codes")
    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    config = load_config(args.config)

    if args.health_check:
        from jurisdiction_engine.health import HealthChecker, format_report
        checker = HealthChecker(ResolutionEngine(config))
        print(format_report(checker.check_all()))
        return

    if not args.zip_code:
        if args.warm_up:
            result = asyncio.run(run_warm_up(config, args.warm_up))
            print(json.dumps(result, indent=2))
            return
        parser.error("a ZIP code is required unless --health-check or --warm-up is given")

    options = {
        "include_voting_records": args.include_voting_records,
        "include_bill_data": args.include_bill_data,
        "include_committee_info": args.include_committee_info,
    }
    try:
        payload = asyncio.run(run_resolve(config, args.zip_code, options, args.warm_up or []))
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except HardFailureError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(json.dumps(payload, indent=2))


if __name__ == "__main__":
    main()
