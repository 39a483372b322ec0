"""
Entry point for the arbitrage engine.

Usage:
    python -m dexarb
    dexarb  # if installed via pip
"""

import asyncio
import logging
import sys

from pydantic import ValidationError


logger = logging.getLogger("dexarb")


def _install_uvloop() -> bool:
    """Use uvloop when it is installed."""
    try:
        import uvloop
    except ImportError:
        return False
    asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
    return True


def main() -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success).
    """
    from dexarb import __version__
    from dexarb.config.settings import get_settings
    from dexarb.core.engine import ArbitrageEngine
    from dexarb.telemetry.logger import setup_logging

    print(
        f"""
╔═══════════════════════════════════════════════════════════════╗
║     DEX ARBITRAGE ENGINE v{__version__:<30}      ║
║                                                               ║
║     Cross-venue cycle detection for Uniswap V2 pools          ║
╚═══════════════════════════════════════════════════════════════╝
    """
    )

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Configuration error: {e}")
        print("\nLive trading needs a .env file with:")
        print("  NODE_URL=ws://your-node:8546")
        print("  SENDER_ADDRESS=0x...")
        print("  DRY_RUN=false")
        return 1

    uvloop_enabled = settings.use_uvloop and _install_uvloop()

    print("Configuration:")
    print(f"  Mode:           {'DRY RUN' if settings.dry_run else 'LIVE TRADING'}")
    print(f"  Market data:    {'Simulated' if settings.simulate else settings.node_url}")
    print(f"  Pairs:          {len(settings.pairs)} on {', '.join(sorted(settings.venues))}")
    print(f"  Extra fee:      {settings.fee_rate * 100:.3f}%")
    print(f"  Bridge cost:    {settings.bridge_cost}")
    print(f"  Trade amount:   {settings.trade_amount}")
    print(f"  uvloop:         {'Enabled' if uvloop_enabled else 'Disabled'}")
    print()

    if not settings.dry_run and not settings.simulate:
        print("⚠️  WARNING: Live trading mode enabled!")
        print(f"    Transactions will be sent from {settings.sender_address}.")
        print()

    async def run_engine() -> int:
        async_logger = setup_logging(level=settings.log_level)
        engine = ArbitrageEngine(settings)

        try:
            await engine.setup()
            await engine.run()
            return 0

        except Exception as e:
            logger.critical(f"Fatal error: {e}", exc_info=True)
            return 1

        finally:
            await engine.shutdown()
            async_logger.stop()

    try:
        return asyncio.run(run_engine())
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 0


if __name__ == "__main__":
    sys.exit(main())
