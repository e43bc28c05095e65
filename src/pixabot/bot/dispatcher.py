import logging
from typing import Any, Dict

from ..models import NavAction
from ..services.telegram import TelegramError, TelegramGateway
from . import messages
from .pagination import PaginationController

logger = logging.getLogger(__name__)

START_COMMAND = "/start"


class UpdateDispatcher:
    """Routes raw Telegram updates to the pagination controller."""

    def __init__(self, controller: PaginationController, gateway: TelegramGateway) -> None:
        self._controller = controller
        self._gateway = gateway

    async def dispatch(self, update: Dict[str, Any]) -> None:
        """Handle one update. Never raises: failures are logged and dropped."""
        try:
            if "callback_query" in update:
                await self._on_callback(update["callback_query"])
            elif "message" in update:
                await self._on_message(update["message"])
        except Exception as e:
            logger.exception("Update %s failed: %s", update.get("update_id"), e)

    async def _on_message(self, message: Dict[str, Any]) -> None:
        text = message.get("text")
        chat_id = (message.get("chat") or {}).get("id")
        if not text or chat_id is None:
            return

        if text.startswith("/"):
            command = text.split()[0].split("@")[0]
            if command == START_COMMAND:
                try:
                    await self._gateway.send_message(chat_id, messages.WELCOME)
                except TelegramError as e:
                    logger.warning("Chat %s: could not send welcome: %s", chat_id, e)
            return

        if not text.strip():
            return
        await self._controller.new_query(chat_id, text)

    async def _on_callback(self, callback: Dict[str, Any]) -> None:
        callback_id = callback.get("id")
        chat_id = ((callback.get("message") or {}).get("chat") or {}).get("id")
        try:
            action = NavAction(callback.get("data"))
        except ValueError:
            action = None

        notice = None
        if action is not None and chat_id is not None:
            handled = await self._controller.navigate(chat_id, action)
            if not handled:
                notice = messages.REQUEST_IN_PROGRESS
        else:
            logger.debug("Ignoring callback %r", callback.get("data"))

        if callback_id:
            try:
                await self._gateway.answer_callback_query(callback_id, notice)
            except TelegramError as e:
                logger.debug("Could not answer callback %s: %s", callback_id, e)
