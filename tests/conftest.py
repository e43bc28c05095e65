import sys
from pathlib import Path

import pytest

_root = Path(__file__).resolve().parents[1]
_src = _root / "src"
if _src.exists() and str(_src) not in sys.path:
    sys.path.insert(0, str(_src))

from pixabot.settings import Settings  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    """Settings independent of the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        pixabay_access_key="pixabay-key",
        telegram_bot_token="123:abc",
    )
