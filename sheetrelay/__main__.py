"""Local polling loop: ``python -m sheetrelay``."""
from __future__ import annotations

import asyncio
import logging

from .config import TimerLoop, load_config
from .daemon import PollerDaemon
from .functions import configure_logging, create_poller, handle_message

logger = logging.getLogger(__name__)


async def main() -> None:
    config = load_config()
    configure_logging(config.log_level)
    poller = create_poller(config)

    if not isinstance(config.mode, TimerLoop):
        # A managed runtime invoked us directly; do a single scheduled run.
        handle_message(poller)
        return

    daemon = PollerDaemon(poller, config.mode.interval_seconds)
    try:
        await daemon.start()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    finally:
        await daemon.stop()


if __name__ == "__main__":
    asyncio.run(main())
