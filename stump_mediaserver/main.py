import asyncio
import logging
import signal
import sys
import uvicorn
from typing import Optional

from .config import settings
from .clients.stump_client import StumpClient
from .events import LoggingEventListener
from .exceptions import StumpError
from .notifier import create_event_notifier
from . import server

# Setup logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
# Silence noisy libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("websockets").setLevel(logging.WARNING)

logger = logging.getLogger("main")

SHUTDOWN_GRACE_SECONDS = 10

class EventService:
    """Runs the Stump event notifier with a logging listener, plus the optional health server."""

    def __init__(self, client: Optional[StumpClient] = None):
        self.client = client or StumpClient()
        self.notifier = create_event_notifier(self.client, [LoggingEventListener()])

        # Link notifier to server module
        server.notifier = self.notifier

    async def check_connection(self):
        try:
            libraries = await self.client.get_libraries()
            logger.info(f"Connected to Stump at {self.client.base_url} ({len(libraries)} libraries)")
        except StumpError as e:
            # Not fatal, the notifier keeps retrying
            logger.warning(f"Stump at {self.client.base_url} is not reachable yet: {e}")

    async def start(self):
        try:
            await self.check_connection()
            self.notifier.start()
            tasks = [asyncio.create_task(self.notifier.join())]

            if settings.HTTP_SERVER_ENABLED:
                config = uvicorn.Config(server.app, host="0.0.0.0", port=settings.HTTP_SERVER_PORT, log_level="warning")
                server_task = uvicorn.Server(config).serve()
                tasks.append(asyncio.create_task(server_task))

            await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            pass
        finally:
            await self.shutdown()

    async def shutdown(self):
        self.notifier.stop()
        try:
            await asyncio.wait_for(self.notifier.join(), timeout=SHUTDOWN_GRACE_SECONDS)
        except asyncio.TimeoutError:
            logger.warning("Event notifier did not stop in time")
        await self.client.close()

def handle_sigterm(sig, frame):
    logger.info("Received SIGTERM, shutting down...")
    sys.exit(0)

if __name__ == "__main__":
    signal.signal(signal.SIGTERM, handle_sigterm)
    service = EventService()
    try:
        asyncio.run(service.start())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
