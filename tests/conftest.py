import pytest

from lerb.config import BotSettings
from tests.telegram_fakes import _FakeBot, _FakeTransport, _SleepRecorder, make_settings


@pytest.fixture
def fake_transport() -> _FakeTransport:
    return _FakeTransport()


@pytest.fixture
def fake_bot() -> _FakeBot:
    return _FakeBot()


@pytest.fixture
def settings() -> BotSettings:
    return make_settings()


@pytest.fixture
def sleeper() -> _SleepRecorder:
    return _SleepRecorder()
