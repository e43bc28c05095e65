from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from pixabot.bot.dispatcher import UpdateDispatcher
from pixabot.main import create_app
from pixabot.services.telegram import TelegramGateway
from pixabot.settings import Settings

SECRET = "s3cret"
FORGED_UPDATE = {"update_id": 9, "message": {"chat": {"id": 424242}, "text": "cats"}}


def webhook_settings(**overrides) -> Settings:
    values = dict(
        _env_file=None,
        pixabay_access_key="pixabay-key",
        telegram_bot_token="123:abc",
        telegram_use_polling=False,
        telegram_webhook_url="https://bot.example.org/telegram/webhook",
        telegram_webhook_secret=SECRET,
    )
    values.update(overrides)
    return Settings(**values)


def mock_dispatcher() -> MagicMock:
    dispatcher = MagicMock(spec=UpdateDispatcher)
    dispatcher.dispatch = AsyncMock(return_value=None)
    return dispatcher


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch):
    """Webhook-mode app with Telegram registration and the dispatcher mocked out."""
    set_webhook = AsyncMock(return_value=None)
    monkeypatch.setattr(TelegramGateway, "set_webhook", set_webhook)
    app = create_app(webhook_settings())
    with TestClient(app) as c:
        app.state.dispatcher = mock_dispatcher()
        yield c
    set_webhook.assert_awaited_once_with("https://bot.example.org/telegram/webhook", SECRET)


@pytest.fixture
def polling_client(settings: Settings, monkeypatch: pytest.MonkeyPatch):
    """Polling-mode app (the default config) with no network access."""
    monkeypatch.setattr(TelegramGateway, "delete_webhook", AsyncMock(return_value=None))
    monkeypatch.setattr("pixabot.main.UpdatePoller.run", AsyncMock(return_value=None))
    app = create_app(settings)
    with TestClient(app) as c:
        app.state.dispatcher = mock_dispatcher()
        yield c


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_webhook_dispatches_update(client: TestClient) -> None:
    update = {"update_id": 1, "message": {"chat": {"id": 7}, "text": "cats"}}
    response = client.post(
        "/telegram/webhook",
        json=update,
        headers={"X-Telegram-Bot-Api-Secret-Token": SECRET},
    )
    assert response.status_code == 200
    assert response.json() == {"ok": True}
    client.app.state.dispatcher.dispatch.assert_awaited_once_with(update)


def test_webhook_rejects_wrong_secret(client: TestClient) -> None:
    response = client.post(
        "/telegram/webhook",
        json={"update_id": 1},
        headers={"X-Telegram-Bot-Api-Secret-Token": "nope"},
    )
    assert response.status_code == 403
    client.app.state.dispatcher.dispatch.assert_not_called()


def test_webhook_rejects_missing_secret(client: TestClient) -> None:
    response = client.post("/telegram/webhook", json=FORGED_UPDATE)
    assert response.status_code == 403
    client.app.state.dispatcher.dispatch.assert_not_called()


def test_webhook_rejects_non_object(client: TestClient) -> None:
    response = client.post(
        "/telegram/webhook",
        json=[1, 2],
        headers={"X-Telegram-Bot-Api-Secret-Token": SECRET},
    )
    assert response.status_code == 400


def test_webhook_closed_in_polling_mode(polling_client: TestClient) -> None:
    """In polling mode the webhook route accepts nothing, secret or not."""
    response = polling_client.post("/telegram/webhook", json=FORGED_UPDATE)
    assert response.status_code == 404
    response = polling_client.post(
        "/telegram/webhook",
        json=FORGED_UPDATE,
        headers={"X-Telegram-Bot-Api-Secret-Token": ""},
    )
    assert response.status_code == 404
    polling_client.app.state.dispatcher.dispatch.assert_not_called()


def test_polling_mode_health(polling_client: TestClient) -> None:
    assert polling_client.get("/health").status_code == 200


def test_webhook_mode_requires_url() -> None:
    with pytest.raises(ValidationError):
        webhook_settings(telegram_webhook_url=None)


def test_webhook_mode_requires_secret() -> None:
    with pytest.raises(ValidationError):
        webhook_settings(telegram_webhook_secret=None)
    with pytest.raises(ValidationError):
        webhook_settings(telegram_webhook_secret="")
