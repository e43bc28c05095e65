import logging
from typing import Any, Dict, List, Sequence

import httpx

from ..models import InlineButton
from ..settings import Settings, get_settings

logger = logging.getLogger(__name__)


class TelegramError(Exception):
    """A Bot API call failed (transport error or an ``ok: false`` reply)."""

    def __init__(self, method: str, description: str, error_code: int | None = None) -> None:
        super().__init__(f"{method} failed: {description}")
        self.method = method
        self.description = description
        self.error_code = error_code


class TelegramGateway:
    """Thin async wrapper over the Telegram Bot API methods the bot uses."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token: str,
        api_url: str = "https://api.telegram.org",
    ) -> None:
        self._http = http_client
        self._base_url = f"{api_url.rstrip('/')}/bot{token}"

    async def _call(
        self,
        method: str,
        payload: Dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """POST a Bot API method and return its ``result`` field."""
        kwargs: Dict[str, Any] = {"json": payload or {}}
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            response = await self._http.post(f"{self._base_url}/{method}", **kwargs)
        except httpx.HTTPError as e:
            # The exception text carries the URL, which embeds the token.
            raise TelegramError(method, type(e).__name__) from e
        try:
            data = response.json()
        except ValueError as e:
            raise TelegramError(method, f"invalid JSON (HTTP {response.status_code})") from e

        if not isinstance(data, dict) or not data.get("ok"):
            description = "unknown error"
            error_code = None
            if isinstance(data, dict):
                description = str(data.get("description") or description)
                error_code = data.get("error_code")
            raise TelegramError(method, description, error_code)
        return data.get("result")

    async def send_message(
        self,
        chat_id: int,
        text: str,
        buttons: Sequence[InlineButton] | None = None,
    ) -> int:
        """Send text, optionally with one row of inline buttons. Returns the message id."""
        payload: Dict[str, Any] = {"chat_id": chat_id, "text": text}
        if buttons:
            payload["reply_markup"] = {
                "inline_keyboard": [
                    [{"text": b.text, "callback_data": b.callback_data} for b in buttons]
                ]
            }
        result = await self._call("sendMessage", payload)
        return int(result["message_id"])

    async def send_photos(self, chat_id: int, urls: Sequence[str]) -> List[int]:
        """Send images by URL as one album. Returns the ids of the sent messages."""
        if not urls:
            return []
        if len(urls) == 1:
            result = await self._call("sendPhoto", {"chat_id": chat_id, "photo": urls[0]})
            return [int(result["message_id"])]
        media = [{"type": "photo", "media": url} for url in urls]
        result = await self._call("sendMediaGroup", {"chat_id": chat_id, "media": media})
        return [int(message["message_id"]) for message in result]

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        await self._call("deleteMessage", {"chat_id": chat_id, "message_id": message_id})

    async def answer_callback_query(self, callback_query_id: str, text: str | None = None) -> None:
        payload: Dict[str, Any] = {"callback_query_id": callback_query_id}
        if text:
            payload["text"] = text
        await self._call("answerCallbackQuery", payload)

    async def get_updates(self, offset: int | None, timeout: int) -> List[Dict[str, Any]]:
        """Long-poll for new updates starting at offset."""
        payload: Dict[str, Any] = {
            "timeout": timeout,
            "allowed_updates": ["message", "callback_query"],
        }
        if offset is not None:
            payload["offset"] = offset
        result = await self._call("getUpdates", payload, timeout=timeout + 10)
        return list(result or [])

    async def set_webhook(self, url: str, secret_token: str | None = None) -> None:
        payload: Dict[str, Any] = {
            "url": url,
            "allowed_updates": ["message", "callback_query"],
        }
        if secret_token:
            payload["secret_token"] = secret_token
        await self._call("setWebhook", payload)
        logger.info("Webhook registered: %s", url)

    async def delete_webhook(self) -> None:
        await self._call("deleteWebhook", {"drop_pending_updates": False})


def get_telegram_gateway(
    http_client: httpx.AsyncClient, settings: Settings | None = None
) -> TelegramGateway:
    """Build the gateway from settings around a shared HTTP client."""
    settings = settings or get_settings()
    return TelegramGateway(
        http_client=http_client,
        token=settings.telegram_bot_token,
        api_url=settings.telegram_api_url,
    )
