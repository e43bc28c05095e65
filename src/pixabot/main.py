import asyncio
import contextlib
import logging
import secrets
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict

import httpx
import uvicorn
from fastapi import BackgroundTasks, FastAPI, Header, HTTPException, Request

from .bot.dispatcher import UpdateDispatcher
from .bot.pagination import PaginationController
from .bot.polling import UpdatePoller
from .services.pixabay import get_search_client
from .services.session_store import ConversationGate, get_session_store
from .services.telegram import TelegramError, get_telegram_gateway
from .settings import Settings, get_settings


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure and return the package logger."""
    logs_dir = Path("logs")
    logs_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("pixabot")
    logger.setLevel(level)
    if logger.handlers:
        return logger

    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    fh = RotatingFileHandler(logs_dir / "bot.log", maxBytes=5_000_000, backupCount=3)
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    return logger


LOGGER = setup_logging()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the web app; services are wired up in the lifespan."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create HTTP client and bot services; start polling or register the webhook."""
        cfg = settings or get_settings()
        setup_logging(cfg.log_level)

        http_client = httpx.AsyncClient(timeout=cfg.request_timeout_seconds)
        gateway = get_telegram_gateway(http_client, cfg)
        controller = PaginationController(
            search_client=get_search_client(http_client, cfg),
            gateway=gateway,
            store=get_session_store(cfg),
            gate=ConversationGate(),
            page_size=cfg.page_size,
        )
        dispatcher = UpdateDispatcher(controller, gateway)
        app.state.settings = cfg
        app.state.dispatcher = dispatcher

        poller: UpdatePoller | None = None
        poll_task: asyncio.Task[None] | None = None
        try:
            if cfg.telegram_use_polling:
                await gateway.delete_webhook()
                poller = UpdatePoller(gateway, dispatcher, timeout=cfg.telegram_poll_timeout_seconds)
                poll_task = asyncio.create_task(poller.run())
            else:
                await gateway.set_webhook(cfg.telegram_webhook_url, cfg.telegram_webhook_secret)
        except TelegramError as e:
            LOGGER.error("Telegram setup failed: %s", e)
            await http_client.aclose()
            raise

        LOGGER.info(
            "Bot started (%s mode)",
            "polling" if cfg.telegram_use_polling else "webhook",
        )
        yield

        LOGGER.info("Shutting down...")
        if poll_task is not None:
            poll_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await poll_task
        if poller is not None:
            await poller.drain()
        await http_client.aclose()

    app = FastAPI(title="Pixabay Image Search Bot", version="0.1.0", lifespan=lifespan)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        """Health check for load balancers and monitoring."""
        return {"status": "ok"}

    @app.post("/telegram/webhook")
    async def telegram_webhook(
        request: Request,
        background_tasks: BackgroundTasks,
        x_telegram_bot_api_secret_token: str | None = Header(default=None),
    ) -> Dict[str, Any]:
        """Accept one Telegram update and process it after replying.

        Telegram retries updates that are not acknowledged quickly, so the
        update is handled as a background task.
        """
        cfg: Settings = request.app.state.settings
        if cfg.telegram_use_polling:
            raise HTTPException(status_code=404, detail="Not Found")
        expected = cfg.telegram_webhook_secret
        if not expected or not secrets.compare_digest(
            x_telegram_bot_api_secret_token or "", expected
        ):
            raise HTTPException(status_code=403, detail="Invalid secret token")

        try:
            update = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid JSON payload")
        if not isinstance(update, dict):
            raise HTTPException(status_code=400, detail="Update must be an object")

        background_tasks.add_task(request.app.state.dispatcher.dispatch, update)
        return {"ok": True}

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "pixabot.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
