"""TradeLens — application entry point.

Boots the FastAPI analysis server and provides the CLI entry point for
one-off analysis of a candle file.
"""

import logging

from fastapi import FastAPI

from tradelens.api.routers import router

app = FastAPI(title="TradeLens Analysis API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("tradelens")


@app.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_analyze(args, config) -> int:
    import json

    from tradelens.analysis.models import OrderBookSnapshot, Ticker
    from tradelens.cli.report import print_decision
    from tradelens.data.loader import load_candles
    from tradelens.decision.engine import analyze

    candles = load_candles(args.candles)
    if not candles:
        logger.error("No usable candles in %s", args.candles)
        return 1

    last = candles[-1].close
    ticker = Ticker(
        last_price=last,
        high_24h=last,
        low_24h=last,
        volume_24h=args.volume_24h,
    )
    orderbook = None
    if args.spread_percent is not None:
        orderbook = OrderBookSnapshot(
            spread=last * args.spread_percent / 100,
            spread_percent=args.spread_percent,
        )

    result = analyze(
        candles,
        ticker,
        orderbook,
        timeframe=args.timeframe,
        symbol=args.symbol,
        config=config,
    )
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_decision(result)
    return 0


def _run_server(port: int, config) -> None:
    import uvicorn

    from tradelens.api.routers import configure_routers

    configure_routers(config)
    logger.info("Analysis API available at http://localhost:%d", port)
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")


def _run_cli(argv=None) -> int:
    """Parse CLI arguments and dispatch to the requested command."""
    import argparse

    from tradelens.config import load_config

    parser = argparse.ArgumentParser(description="TradeLens market analysis")
    sub = parser.add_subparsers(dest="command", required=True)

    p_analyze = sub.add_parser("analyze", help="Analyze a CSV/Parquet candle file")
    p_analyze.add_argument("--candles", required=True, help="Path to .csv or .parquet candles")
    p_analyze.add_argument(
        "--volume-24h", type=float, required=True,
        help="24h quote volume used by the liquidity check",
    )
    p_analyze.add_argument("--spread-percent", type=float, default=None,
                           help="Order-book spread in percent (optional)")
    p_analyze.add_argument("--timeframe", default="1h", help="Timeframe label (default: 1h)")
    p_analyze.add_argument("--symbol", default="", help="Symbol label for the report")
    p_analyze.add_argument("--json", action="store_true", help="Print the raw result as JSON")

    p_serve = sub.add_parser("serve", help="Run the HTTP analysis API")
    p_serve.add_argument("--port", type=int, default=None,
                         help="Listen port (default: TRADELENS_API_PORT or 8080)")

    args = parser.parse_args(argv)
    config = load_config()

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.command == "analyze":
        return _run_analyze(args, config)

    _run_server(args.port or config.api_port, config)
    return 0


if __name__ == "__main__":
    raise SystemExit(_run_cli())
