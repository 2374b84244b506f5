"""
walletsync main entry point.

Converges Bitcoin Core and monero-wallet-rpc to the configured wallets,
reports the outcome and exits. Exits non-zero only when no currency
could be brought up.
"""

import asyncio
import sys

from loguru import logger

from walletsync.config.settings import Settings, settings
from walletsync.initialization.logging import setup_logging
from walletsync.services.wallets import WalletHealthCheck, WalletManager
from walletsync.utils.exceptions import WalletInitError


async def main(app_settings: Settings | None = None) -> int:
    """
    Initialize wallets once and report their health.

    Args:
        app_settings: Settings to use (defaults to the environment)

    Returns:
        Process exit code
    """
    app_settings = app_settings or settings
    setup_logging(app_settings.log_level, app_settings.log_file)
    logger.info("Starting walletsync...")

    manager = WalletManager.from_settings(app_settings)
    try:
        try:
            await manager.initialize()
        except WalletInitError as e:
            logger.error(f"No wallet could be initialized: {e}")
            return 1

        report = await WalletHealthCheck(manager).health_check()
        for currency, status in report["wallets"].items():
            if status["ready"]:
                logger.info(
                    f"{currency}: {status['wallet_name']} {status['state']} "
                    f"balances={status['balances']}"
                )
            else:
                logger.warning(f"{currency}: unavailable")
        return 0
    finally:
        await manager.close()


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("walletsync stopped by user (KeyboardInterrupt)")


if __name__ == "__main__":
    run()
