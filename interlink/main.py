"""Main entry point for interlink.

Initializes logging in two phases (defaults then config-driven),
builds the AppContext, and runs the Discord client with graceful
shutdown on SIGTERM/SIGINT. Supports both Unix signal handlers and
Windows SIGINT fallback.

Key functions:
    main: Async entry point -- sets up logging, config, context and
        signal handlers, then runs the client.
    run: Synchronous wrapper that calls asyncio.run(main()).
"""

import asyncio
import signal
import sys

import structlog

from . import __version__
from .exceptions import ConfigError
from .logging_config import setup_logging


async def main():
    """Main async entry point."""
    # Phase 1: defaults, cache_logger_on_first_use=False
    setup_logging()
    logger = structlog.get_logger("interlink")

    logger.info("interlink_starting", version=__version__)

    # Import here to ensure logging is configured first
    from .app import AppContext
    from .config import get_config

    config = get_config()
    config.validate()

    # Phase 2: reconfigure with real config, cache_logger_on_first_use=True
    setup_logging(config)
    logger.info("config_loaded", environment=config.environment)

    try:
        config.require_token()
    except ConfigError as e:
        logger.error("startup_aborted", error=str(e))
        return 1

    app = AppContext(config)

    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def handle_shutdown(sig):
        logger.info("shutdown_signal_received", signal=sig.name)
        shutdown_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, handle_shutdown, sig)
        except NotImplementedError:
            # Windows: add_signal_handler not supported.
            if sig == signal.SIGINT:
                signal.signal(
                    signal.SIGINT,
                    lambda s, f: handle_shutdown(signal.SIGINT),
                )

    try:
        client_task = asyncio.create_task(app.start())
        shutdown_task = asyncio.create_task(shutdown_event.wait())

        done, _ = await asyncio.wait(
            {client_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED
        )
        if client_task in done:
            # Client stopped on its own (login failure, fatal gateway error)
            shutdown_task.cancel()
            client_task.result()
        else:
            client_task.cancel()
            try:
                await client_task
            except asyncio.CancelledError:
                pass

    except Exception as e:
        logger.error("bot_error", error=str(e), error_type=type(e).__name__)
        raise
    finally:
        await app.close()
        logger.info("interlink_stopped")
    return 0


def run():
    """Synchronous entry point for the ``interlink`` console script."""
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    run()
