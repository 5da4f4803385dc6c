"""CLI entry point for cycle-aware stock screening."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

from cycle_screening.analysis.sector import find_relative_value_opportunities
from cycle_screening.data import (
    history_from_frame,
    indicator_series_from_frame,
    market_from_mapping,
    snapshots_from_frame,
)
from cycle_screening.data.models import CyclePhase, FinancialPeriod, MarketData
from cycle_screening.screening import screen_universe
from cycle_screening.strategies import StrategyRecommendation, get_strategy_recommendations

logger = logging.getLogger(__name__)

PHASE_CHOICES = [p.value for p in CyclePhase]


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list (defaults to sys.argv[1:]).

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        prog="cycle_screening",
        description="Cycle-aware relative value screening",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # rank command
    rank_parser = subparsers.add_parser(
        "rank", help="Rank a universe for a market phase and export CSV"
    )
    rank_parser.add_argument(
        "snapshots",
        type=Path,
        help="CSV of current stock figures (one row per symbol)",
    )
    rank_parser.add_argument(
        "--phase",
        choices=PHASE_CHOICES,
        required=True,
        help="Current market cycle phase",
    )
    rank_parser.add_argument(
        "--history",
        type=Path,
        default=None,
        help="CSV of past periods with a symbol column, most recent first",
    )
    rank_parser.add_argument(
        "--indicator",
        type=Path,
        default=None,
        help="CSV of an economic indicator with date and value columns",
    )
    rank_parser.add_argument(
        "--market",
        type=Path,
        default=None,
        help="CSV with one row of market reference multiples",
    )
    rank_parser.add_argument(
        "--not-overvalued",
        action="store_true",
        help="Skip the overvalued-market allocation adjustment",
    )
    rank_parser.add_argument(
        "--output",
        type=Path,
        default=Path("output/ranking.csv"),
        help="Output CSV path (default: output/ranking.csv)",
    )
    rank_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    # value command
    value_parser = subparsers.add_parser(
        "value", help="Find relative value opportunities in attractive sectors"
    )
    value_parser.add_argument(
        "snapshots",
        type=Path,
        help="CSV of current stock figures (one row per symbol)",
    )
    value_parser.add_argument(
        "--market",
        type=Path,
        required=True,
        help="CSV with one row of market reference multiples",
    )
    value_parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Minimum sector attractiveness (default: 70)",
    )
    value_parser.add_argument(
        "--output",
        type=Path,
        default=Path("output/opportunities.csv"),
        help="Output CSV path (default: output/opportunities.csv)",
    )
    value_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    # strategy command
    strategy_parser = subparsers.add_parser(
        "strategy", help="Show the portfolio recommendation for a market phase"
    )
    strategy_parser.add_argument(
        "phase",
        choices=PHASE_CHOICES,
        help="Current market cycle phase",
    )
    strategy_parser.add_argument(
        "--not-overvalued",
        action="store_true",
        help="Skip the overvalued-market allocation adjustment",
    )
    strategy_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def _load_histories(path: Path | None) -> dict[str, list[FinancialPeriod]]:
    """Read a long-format history CSV into {symbol: periods}."""
    if path is None:
        return {}
    frame = pd.read_csv(path)
    if "symbol" not in frame.columns:
        raise ValueError("Missing required columns: ['symbol']")
    return {
        str(symbol): history_from_frame(group)
        for symbol, group in frame.groupby("symbol", sort=False)
    }


def _load_market(path: Path | None) -> MarketData | None:
    if path is None:
        return None
    frame = pd.read_csv(path)
    if frame.empty:
        logger.warning("Market file %s has no rows", path)
        return MarketData()
    return market_from_mapping(frame.iloc[0].to_dict())


def _write_csv(frame: pd.DataFrame, output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(output)


def _log_recommendation(rec: StrategyRecommendation) -> None:
    alloc = rec.allocation
    logger.info(
        "%s (overvalued=%s): stocks %g%%, bonds %g%%, cash %g%%, risk %s",
        rec.market_cycle, rec.is_overvalued,
        alloc.stocks, alloc.bonds, alloc.cash, rec.risk_level,
    )
    logger.info("Sector focus: %s", ", ".join(rec.sector_focus))
    logger.info("Factor tilts: %s", ", ".join(rec.factor_tilts))
    logger.info("%s", rec.description)
    if rec.overvalued_emphasis:
        logger.info("Emphasis: %s", rec.overvalued_emphasis)
        logger.info("Tactics: %s", rec.additional_tactics)


def run_rank(args: argparse.Namespace) -> None:
    """Execute the rank command.

    Args:
        args: Parsed CLI arguments.
    """
    stocks = snapshots_from_frame(pd.read_csv(args.snapshots))
    histories = _load_histories(args.history)
    indicator = (
        indicator_series_from_frame(pd.read_csv(args.indicator))
        if args.indicator is not None
        else None
    )
    market = _load_market(args.market)

    logger.info(
        "Universe: %d stocks, %d with history", len(stocks), len(histories),
    )

    result = screen_universe(
        stocks,
        histories,
        args.phase,
        indicator_series=indicator,
        market=market,
        is_overvalued=not args.not_overvalued,
    )
    _write_csv(result.ranking, args.output)

    n_outliers = len(result.outliers.outliers)
    if n_outliers:
        logger.warning(
            "%d combined-score outliers: %s",
            n_outliers, ", ".join(map(str, result.outliers.outliers.index)),
        )
    logger.info("Ranking of %d stocks written to %s", len(result.ranking), args.output)
    _log_recommendation(result.recommendation)


def run_value(args: argparse.Namespace) -> None:
    """Execute the value command.

    Args:
        args: Parsed CLI arguments.
    """
    stocks = snapshots_from_frame(pd.read_csv(args.snapshots))
    market = _load_market(args.market) or MarketData()

    opportunities = find_relative_value_opportunities(
        stocks, market, threshold=args.threshold,
    )
    _write_csv(opportunities, args.output)
    logger.info("%d opportunities written to %s", len(opportunities), args.output)


def run_strategy(args: argparse.Namespace) -> None:
    """Execute the strategy command.

    Args:
        args: Parsed CLI arguments.
    """
    _log_recommendation(
        get_strategy_recommendations(args.phase, is_overvalued=not args.not_overvalued)
    )


def main(argv: list[str] | None = None) -> None:
    """Main entry point.

    Args:
        argv: Argument list (defaults to sys.argv[1:]).
    """
    args = _parse_args(argv)

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.command == "rank":
        run_rank(args)
    elif args.command == "value":
        run_value(args)
    elif args.command == "strategy":
        run_strategy(args)
    else:
        logger.error("Unknown command: %s", args.command)
        sys.exit(1)


if __name__ == "__main__":
    main()
