"""
FastAPI Application - HTTP side of the bridge
=============================================

This module creates the FastAPI application the relay posts events
to, and runs it together with the bot.
"""

import threading

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import uvicorn

from core.config import Settings
from core.logging import get_logger
from services.bot import ChatBot
from services.bridge import BridgeTransport

logger = get_logger("web.app")


def create_app(bot: ChatBot, debug: bool = False) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        bot: Bot that receives the events
        debug: Enable debug mode

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Simple Bot",
        description="Event endpoint for the voice server relay",
        version="1.0.0",
        debug=debug,
    )

    app.state.bot = bot

    from .routes import router as main_router
    app.include_router(main_router, prefix="")

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "detail": str(exc) if debug else "An error occurred"}
        )

    logger.info("Web application created")

    return app


def run_bridge(settings: Settings, host: str = None, port: int = None, debug: bool = False) -> None:
    """
    Connect through the relay and serve its events until stopped.

    The bot loop runs on a background thread; the web server runs on
    the calling thread and exits once the bot quits.

    Args:
        settings: Loaded settings
        host: Address to bind (defaults to ``settings.bridge.host``)
        port: Port to listen on (defaults to ``settings.bridge.port``)
        debug: Enable debug mode

    Raises:
        BotError: If the actions cannot be loaded or the relay is unreachable
    """
    transport = BridgeTransport(settings.bridge)
    bot = ChatBot(settings, transport)
    app = create_app(bot, debug=debug)

    server = uvicorn.Server(uvicorn.Config(
        app,
        host=host or settings.bridge.host,
        port=port or settings.bridge.port,
        log_level="debug" if debug else "info",
    ))

    transport.connect(settings)

    def watch_bot() -> None:
        bot.join()
        server.should_exit = True

    bot.start()

    threading.Thread(target=watch_bot, name="bot-watch", daemon=True).start()

    logger.info(f"Listening for relay events on {server.config.host}:{server.config.port}")
    try:
        server.run()
    finally:
        bot.stop()
        bot.shutdown()
