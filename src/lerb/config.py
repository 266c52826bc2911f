from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

# Environment variable names for secrets
ENV_BOT_TOKEN = "LERB_BOT_TOKEN"

LOCAL_CONFIG_NAME = Path(".lerb") / "lerb.toml"
HOME_CONFIG_PATH = Path.home() / ".lerb" / "lerb.toml"

START_CALLBACK_DATA = "start_process"


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class BotSettings:
    bot_token: str
    poll_timeout: int = 30
    poll_interval: float = 0.5
    error_cooldown: float = 2.0
    request_timeout: float = 60.0
    start_command: str = "/start"
    welcome_text: str = "Welcome! Click the button below to start processing links."
    start_button_text: str = "Start Processing"
    callback_ack_text: str = "Okay, you can send links now."
    confirmation_template: str = (
        "✅ Filtered and stored {count} links. Original message deleted."
    )

    def confirmation_text(self, count: int) -> str:
        return self.confirmation_template.format(count=count)


def _config_candidates() -> list[Path]:
    candidates = [Path.cwd() / LOCAL_CONFIG_NAME, HOME_CONFIG_PATH]
    if candidates[0] == candidates[1]:
        return [candidates[0]]
    return candidates


def _read_config(cfg_path: Path) -> dict:
    try:
        raw = cfg_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Missing config file {cfg_path}.") from None
    except OSError as e:
        raise ConfigError(f"Failed to read config file {cfg_path}: {e}") from e
    try:
        return tomllib.loads(raw)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Malformed TOML in {cfg_path}: {e}") from None


def load_config(path: str | Path | None = None) -> tuple[dict, Path | None]:
    """Read the TOML config.

    An explicit path must exist. Otherwise the local and home locations are
    tried in order, and an empty config is returned when neither exists.
    """
    if path:
        cfg_path = Path(path).expanduser()
        return _read_config(cfg_path), cfg_path

    for candidate in _config_candidates():
        if candidate.is_file():
            return _read_config(candidate), candidate
    return {}, None


def _where(config_path: Path | None) -> str:
    return str(config_path) if config_path is not None else "config"


def get_bot_token(
    config: dict, config_path: Path | None, override: str | None = None
) -> str:
    """Get bot token from the command line, environment or config file.

    Precedence: explicit override, then LERB_BOT_TOKEN, then `bot_token`.
    """
    if override and override.strip():
        return override.strip()

    env_token = os.environ.get(ENV_BOT_TOKEN)
    if env_token and env_token.strip():
        return env_token.strip()

    try:
        token = config["bot_token"]
    except KeyError:
        raise ConfigError(
            f"Missing bot token. Pass --token, set {ENV_BOT_TOKEN} "
            f"or add `bot_token` to {_where(config_path)}."
        ) from None

    if not isinstance(token, str) or not token.strip():
        raise ConfigError(
            f"Invalid `bot_token` in {_where(config_path)}; expected a non-empty string."
        )
    return token.strip()


def _positive_number(
    config: dict, key: str, default: float, config_path: Path | None
) -> float:
    value = config.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigError(
            f"Invalid `{key}` in {_where(config_path)}; expected a non-negative number."
        )
    return float(value)


def _text(config: dict, key: str, default: str, config_path: Path | None) -> str:
    value = config.get(key, default)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"Invalid `{key}` in {_where(config_path)}; expected a non-empty string."
        )
    return value


def build_settings(
    config: dict[str, Any],
    config_path: Path | None,
    *,
    token_override: str | None = None,
) -> BotSettings:
    defaults = BotSettings(bot_token="")
    token = get_bot_token(config, config_path, token_override)

    poll_timeout = config.get("poll_timeout", defaults.poll_timeout)
    if isinstance(poll_timeout, bool) or not isinstance(poll_timeout, int) or poll_timeout < 0:
        raise ConfigError(
            f"Invalid `poll_timeout` in {_where(config_path)}; expected a non-negative integer."
        )

    template = _text(
        config, "confirmation_template", defaults.confirmation_template, config_path
    )
    if "{count}" not in template:
        raise ConfigError(
            f"Invalid `confirmation_template` in {_where(config_path)}; "
            "it must contain `{count}`."
        )

    return BotSettings(
        bot_token=token,
        poll_timeout=poll_timeout,
        poll_interval=_positive_number(
            config, "poll_interval", defaults.poll_interval, config_path
        ),
        error_cooldown=_positive_number(
            config, "error_cooldown", defaults.error_cooldown, config_path
        ),
        request_timeout=_positive_number(
            config, "request_timeout", defaults.request_timeout, config_path
        ),
        start_command=_text(config, "start_command", defaults.start_command, config_path),
        welcome_text=_text(config, "welcome_text", defaults.welcome_text, config_path),
        start_button_text=_text(
            config, "start_button_text", defaults.start_button_text, config_path
        ),
        callback_ack_text=_text(
            config, "callback_ack_text", defaults.callback_ack_text, config_path
        ),
        confirmation_template=template,
    )


def load_settings(
    path: str | Path | None = None, *, token_override: str | None = None
) -> BotSettings:
    config, config_path = load_config(path)
    return build_settings(config, config_path, token_override=token_override)
