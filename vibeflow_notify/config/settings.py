"""Service settings -- reads from environment and ``.env`` file."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

from ..errors import ConfigurationError
from ..util.env_file import EnvFile
from ..util.singletons import register_singleton

SECRET_ENV_KEYS: frozenset[str] = frozenset({
    "SLACK_SIGNING_SECRET",
    "SLACK_BOT_TOKEN",
    "NOTIFY_API_SECRET",
})


@dataclass(frozen=True)
class SlackCredentials:
    """Snapshot of the Slack secrets, taken once at startup."""

    signing_secret: str
    bot_token: str

    def __repr__(self) -> str:
        return "SlackCredentials(signing_secret=***, bot_token=***)"


class Settings:

    _DATA_DIR_ENV: ClassVar[str] = "VIBEFLOW_DATA_DIR"

    def __init__(self) -> None:
        dotenv = os.getenv("DOTENV_PATH")
        if not dotenv:
            data_dir = os.getenv(self._DATA_DIR_ENV)
            dotenv = str(Path(data_dir) / ".env") if data_dir else ".env"
        self.env = EnvFile(dotenv)
        self.reload()

    def reload(self) -> None:
        e = self._read

        self.slack_signing_secret: str = e("SLACK_SIGNING_SECRET")
        self.slack_bot_token: str = e("SLACK_BOT_TOKEN")
        self.notify_api_secret: str = e("NOTIFY_API_SECRET")

        self.port: int = int(e("NOTIFY_PORT") or "8000")
        self.dispatch_timeout: float = float(e("SLACK_DISPATCH_TIMEOUT") or "10")

    @property
    def data_dir(self) -> Path:
        return Path(os.getenv(self._DATA_DIR_ENV, str(Path.home() / ".vibeflow-notify")))

    @property
    def delivery_log_path(self) -> Path:
        return self.data_dir / "delivery_logs.jsonl"

    @property
    def webhook_config_path(self) -> Path:
        return self.data_dir / "slack_webhooks.json"

    def _read(self, key: str) -> str:
        return self.env.read(key) or os.getenv(key, "")

    def ensure_dirs(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def slack_credentials(self) -> SlackCredentials:
        """Return the Slack secrets, or raise if either one is missing."""
        missing = [
            key for key, value in (
                ("SLACK_SIGNING_SECRET", self.slack_signing_secret),
                ("SLACK_BOT_TOKEN", self.slack_bot_token),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing Slack credentials: {', '.join(missing)}")
        return SlackCredentials(
            signing_secret=self.slack_signing_secret,
            bot_token=self.slack_bot_token,
        )

    def describe(self) -> dict[str, str]:
        """Startup summary with secrets reduced to set/missing."""
        summary = {
            key: "set" if self._read(key) else "missing"
            for key in sorted(SECRET_ENV_KEYS)
        }
        summary["NOTIFY_PORT"] = str(self.port)
        summary["SLACK_DISPATCH_TIMEOUT"] = f"{self.dispatch_timeout:g}"
        summary["VIBEFLOW_DATA_DIR"] = str(self.data_dir)
        return summary


cfg = Settings()


def _reset_cfg() -> None:
    global cfg
    cfg = Settings()


register_singleton(_reset_cfg)
