"""OTCFeed — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for
api, feed, and simulate modes.
"""

import logging

from fastapi import FastAPI

from otcfeed.api.routers import router

app = FastAPI(title="OTCFeed Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("otcfeed")


@app.get("/health")
async def health():
    """Liveness probe."""
    return {"status": "ok"}


def build_feed(config, seeds=None):
    """Wire generator, manual control and feed manager from *config*.

    Returns:
        ``(generator, manager)`` with symbols already registered and the
        API routers pointed at them.
    """
    from otcfeed.api.routers import configure_routers
    from otcfeed.config import load_symbols
    from otcfeed.control.manual_control import InMemoryManualControl
    from otcfeed.feed_manager import FeedManager
    from otcfeed.generator.price_generator import OTCPriceGenerator

    if seeds is None:
        seeds = load_symbols(config.symbols_file)

    manual_control = InMemoryManualControl()
    generator = OTCPriceGenerator.from_config(config, manual_control=manual_control)
    manager = FeedManager(config=config, generator=generator, seeds=seeds)
    manager.build_symbols()
    configure_routers(generator, feed_manager=manager, manual_control=manual_control)
    return generator, manager


def simulate(generator, symbol: str, ticks: int) -> list:
    """Generate *ticks* OTC ticks for *symbol* on a simulated clock.

    The generator must have been built with a clock returned by
    :func:`_stepping_clock` so that every call is due.

    Returns:
        The emitted ``PriceTick`` objects.
    """
    emitted = []
    for _ in range(ticks):
        tick = generator.generate_next_price(symbol)
        if tick is not None:
            emitted.append(tick)
    return emitted


def _stepping_clock(step_seconds: float, start: float = 0.0):
    """Clock that advances *step_seconds* on every read."""
    now = [start]

    def _clock() -> float:
        now[0] += step_seconds
        return now[0]

    return _clock


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments and dispatch to the appropriate mode."""
    import argparse
    import asyncio
    import signal

    from otcfeed.config import load_config

    parser = argparse.ArgumentParser(description="OTCFeed synthetic price generator")
    parser.add_argument(
        "--mode",
        choices=["api", "feed", "simulate"],
        default="api",
        help="Run mode (default: api)",
    )
    parser.add_argument("--symbol", help="Symbol to simulate (simulate mode)")
    parser.add_argument(
        "--ticks",
        type=int,
        default=100,
        help="Number of ticks to generate (simulate mode, default: 100)",
    )
    args = parser.parse_args()

    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.mode == "simulate":
        _run_simulation(config, args.symbol, args.ticks)
        return

    _, manager = build_feed(config)

    def handle_shutdown(signum, frame):
        logger.info("Shutdown signal received, stopping gracefully.")
        manager.stop_all()

    signal.signal(signal.SIGINT, handle_shutdown)

    if args.mode == "feed":
        asyncio.run(_run_feed_only(manager))
    else:
        asyncio.run(_run_feed_with_api(manager, config.api_port))


async def _run_feed_with_api(manager, port: int = 8080) -> None:
    """Start the API server and all symbol feeds concurrently."""
    import asyncio

    import uvicorn

    logger.info("Starting OTCFeed with %d symbol(s).", len(manager.symbols))

    uvi_config = uvicorn.Config(app, host="0.0.0.0", port=port, log_level="info")
    server = uvicorn.Server(uvi_config)

    logger.info("API available at http://localhost:%d", port)
    results = await asyncio.gather(
        server.serve(),
        manager.run_all(),
        return_exceptions=True,
    )
    logger.info("OTCFeed stopped. Results: %s", results)


async def _run_feed_only(manager, refresh_seconds: float = 2.0) -> None:
    """Run the feeds without the API and print a price board periodically."""
    import asyncio

    from otcfeed.api.routers import latest_ticks
    from otcfeed.cli.board import format_board

    logger.info("Starting OTCFeed feeds (no API) with %d symbol(s).", len(manager.symbols))
    feed_task = asyncio.create_task(manager.run_all())
    while not feed_task.done():
        await asyncio.sleep(refresh_seconds)
        format_board(latest_ticks(), manager.pip_sizes())
    await feed_task
    logger.info("OTCFeed feeds stopped.")


def _run_simulation(config, symbol, ticks: int) -> None:
    """Print *ticks* simulated ticks for one symbol and a closing board."""
    from otcfeed.cli.board import format_board
    from otcfeed.config import load_symbols
    from otcfeed.generator.price_generator import OTCPriceGenerator

    seeds = {s.config.symbol: s for s in load_symbols(config.symbols_file)}
    if not seeds:
        logger.error("No symbols configured; nothing to simulate.")
        return
    seed = seeds.get(symbol) if symbol else next(iter(seeds.values()))
    if seed is None:
        logger.error("Unknown symbol: %s", symbol)
        return

    step = (config.tick_interval_ms + config.tick_variance_ms + 1) / 1000.0
    generator = OTCPriceGenerator.from_config(config, clock=_stepping_clock(step))
    generator.initialize_symbol(seed.config, seed.initial_price)

    emitted = simulate(generator, seed.config.symbol, ticks)
    for tick in emitted:
        print(f"{tick.timestamp.isoformat()}  {tick.symbol}  {tick.price}")
    if emitted:
        format_board(
            {seed.config.symbol: emitted[-1].to_dict()},
            {seed.config.symbol: seed.config.pip_size},
            title="OTCFeed Simulation",
        )


if __name__ == "__main__":
    _run_cli()
