"""Log once when the gateway session is ready."""

import structlog

logger = structlog.get_logger("interlink.handlers")


async def _on_ready() -> None:
    logger.info("client_ready")


event = {"name": "ready", "once": True, "execute": _on_ready}
