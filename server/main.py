"""FastAPI server hosting card art and running the Playing Cards Discord bot."""

import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from bot import PlayingCardsBot
from card_images import CardStyle
from config import config, token_from_argv
from guild import ServerRegistry
from logging_config import setup_logging
from routers.health import router as health_router, set_health_dependencies

setup_logging(
    level=config.LOG_LEVEL,
    environment=config.ENVIRONMENT,
)
logger = logging.getLogger(__name__)


registry = ServerRegistry(
    default_style=CardStyle.from_name(config.DEFAULT_CARD_STYLE) or CardStyle.KENNEY,
    default_include_jokers=config.DEFAULT_INCLUDE_JOKERS,
)

_bot: Optional[PlayingCardsBot] = None
_bot_task: Optional[asyncio.Task] = None


async def _run_bot(bot: PlayingCardsBot, token: str) -> None:
    """Keep the gateway connection alive; log instead of crashing the HTTP server."""
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.exception("Discord bot stopped unexpectedly")


async def _start_bot() -> None:
    global _bot, _bot_task
    _bot = PlayingCardsBot(registry)
    _bot_task = asyncio.create_task(_run_bot(_bot, config.BOT_TOKEN))
    logger.info("Discord bot starting")


async def _shutdown_services() -> None:
    """Stop running games, then disconnect from Discord."""
    await registry.close()

    if _bot is not None:
        await _bot.close()
        logger.info("Discord connection closed")

    if _bot_task is not None and not _bot_task.done():
        _bot_task.cancel()
        try:
            await _bot_task
        except asyncio.CancelledError:
            pass


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler: runs the bot alongside the HTTP server."""
    if config.BOT_TOKEN:
        await _start_bot()
    else:
        logger.warning("BOT_TOKEN not configured - serving card images only")

    set_health_dependencies(registry=registry, bot=_bot)
    logger.info(f"Playing Cards server started (environment={config.ENVIRONMENT})")

    yield

    logger.info("Shutdown initiated...")
    await _shutdown_services()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Playing Cards Bot",
    debug=config.DEBUG,
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(health_router)

# Serve card art and the landing page if the directories exist
root_path = os.path.join(os.path.dirname(__file__), "..")
card_images_path = os.path.join(root_path, config.CARD_IMAGES_DIR)
if os.path.exists(card_images_path):
    app.mount("/card_images", StaticFiles(directory=card_images_path), name="card_images")

public_path = os.path.join(root_path, config.PUBLIC_DIR)
if os.path.exists(public_path):
    app.mount("/", StaticFiles(directory=public_path, html=True), name="public")


def run():
    """Run the server using uvicorn. Accepts ``-t <token>`` on the command line."""
    import uvicorn

    token = token_from_argv(sys.argv[1:])
    if token:
        config.BOT_TOKEN = token

    logger.info(f"Starting Playing Cards server on {config.HOST}:{config.PORT}")
    logger.info(f"Debug mode: {config.DEBUG}")

    uvicorn.run(
        app,
        host=config.HOST,
        port=config.PORT,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
