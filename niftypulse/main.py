"""NiftyPulse — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for
serve and report modes.
"""

import logging

from fastapi import FastAPI

from niftypulse.api.routers import router

app = FastAPI(title="NiftyPulse Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("niftypulse")


@app.get("/health")
async def health():
    """Liveness probe."""
    return {"status": "ok"}


def build_service(config, force_mock: bool = False):
    """Create the market data service, with a live client unless disabled."""
    from niftypulse.feeds.market_data import MarketDataService
    from niftypulse.feeds.yahoo_client import YahooFinanceClient

    client = None
    if config.use_live_data and not force_mock:
        client = YahooFinanceClient(config)
    else:
        logger.info("Live data disabled — serving mock data only.")
    return MarketDataService(config, client=client)


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments and dispatch to the appropriate mode."""
    import argparse
    import asyncio

    from niftypulse.api.routers import configure_routers
    from niftypulse.config import load_config

    parser = argparse.ArgumentParser(description="NiftyPulse index analysis")
    parser.add_argument(
        "--mode",
        choices=["serve", "report"],
        default="serve",
        help="Run the API server or print a one-off report (default: serve)",
    )
    parser.add_argument("--port", type=int, help="API port (overrides API_PORT)")
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use synthetic data instead of live feeds",
    )
    args = parser.parse_args()

    config = load_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    service = build_service(config, force_mock=args.mock)

    if args.mode == "report":
        asyncio.run(_run_report(service))
        return

    configure_routers(service)
    _run_server(args.port or config.api_port)


async def _run_report(service) -> None:
    """Compute the morning setup and the next-day prediction and print them."""
    from niftypulse.cli.report import format_prediction, format_setup

    setup, sources = await service.morning_setup()
    logger.info("Timeframe sources: %s", sources)
    format_setup(setup)

    prediction, _, source = await service.prediction()
    logger.info("Prediction source: %s", source)
    format_prediction(prediction)


def _run_server(port: int) -> None:
    import uvicorn

    logger.info("API available at http://localhost:%d", port)
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")


if __name__ == "__main__":
    _run_cli()
