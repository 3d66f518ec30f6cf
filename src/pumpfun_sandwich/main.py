from __future__ import annotations

import argparse
import asyncio
import logging
import os
from dataclasses import replace

from dotenv import load_dotenv

from .config import Settings, load_settings
from .formatting import format_simulation, format_summary
from .numeric import sol_to_lamports
from .rpc import MAX_SIGNATURE_PAGE
from .service import AnalysisService
from .simulator import simulate_sandwich


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _signature_limit(raw: str) -> int:
    value = int(raw)
    if not 0 < value <= MAX_SIGNATURE_PAGE:
        raise argparse.ArgumentTypeError(f"must be between 1 and {MAX_SIGNATURE_PAGE}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pumpfun-sandwich",
        description="Detect sandwich attacks on a pump.fun bonding-curve token.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    detect = commands.add_parser("detect", help="fetch recent trades for a mint and scan them")
    detect.add_argument("mint", help="token mint address")
    detect.add_argument("--limit", type=_signature_limit, help="number of signatures to fetch")
    detect.add_argument("--max-slot-gap", type=int)
    detect.add_argument("--min-profit-lamports", type=int)
    detect.add_argument("--min-bot-trades", type=int)
    detect.add_argument("--min-victim-sol", type=float)
    detect.add_argument("--min-victim-token", type=float)

    simulate = commands.add_parser("simulate", help="replay a what-if sandwich on a fresh curve")
    simulate.add_argument("victim_sol", type=float, help="victim buy size in SOL, e.g. 1")
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    detector_overrides = {
        name: value
        for name, value in (
            ("max_slot_gap", args.max_slot_gap),
            ("min_profit_lamports", args.min_profit_lamports),
            ("min_bot_trades", args.min_bot_trades),
            ("min_victim_abs_sol", args.min_victim_sol),
            ("min_victim_abs_token", args.min_victim_token),
        )
        if value is not None
    }
    detector = replace(settings.detector, **detector_overrides)
    if args.limit is not None:
        return replace(settings, signature_limit=args.limit, detector=detector)
    return replace(settings, detector=detector)


async def _detect(args: argparse.Namespace) -> None:
    settings = apply_overrides(load_settings(), args)
    configure_logging(settings.log_level)
    service = AnalysisService(settings)
    try:
        report = await service.analyze(args.mint)
    finally:
        await service.close()
    print(format_summary(report.summary, len(report.trades)))


def _simulate(args: argparse.Namespace) -> None:
    load_dotenv()
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    result = simulate_sandwich(sol_to_lamports(args.victim_sol))
    print(format_simulation(result))


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        if args.command == "detect":
            asyncio.run(_detect(args))
        else:
            _simulate(args)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
