"""Slack incoming-webhook targets -- persistent JSON store.

One target per publishable content type. Disabling a target keeps its URL
so it can be re-enabled without re-entering the secret webhook address.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..config import settings
from ..messaging.content import PUBLISH_CONTENT_TYPES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WebhookTarget:
    content_type: str
    webhook_url: str
    channel_name: str = ""
    is_enabled: bool = True
    updated_at: str = ""

    def to_public_dict(self) -> dict[str, Any]:
        """Serialise with the webhook URL masked; the URL embeds a secret."""
        data = asdict(self)
        data["webhook_url"] = _mask_url(self.webhook_url)
        return data


def _mask_url(url: str) -> str:
    head, sep, _tail = url.rpartition("/")
    return f"{head}{sep}***" if sep else "***"


class WebhookConfigStore:
    """JSON-file-backed map of content type to webhook target."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or settings.cfg.webhook_config_path
        self._lock = threading.Lock()
        self._targets: dict[str, WebhookTarget] = {}
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def list_targets(self) -> list[WebhookTarget]:
        return [self._targets[k] for k in sorted(self._targets)]

    def get(self, content_type: str) -> WebhookTarget | None:
        return self._targets.get(content_type)

    def enabled_target(self, content_type: str) -> WebhookTarget | None:
        """The target for *content_type* if one exists and is enabled."""
        target = self._targets.get(content_type)
        if target is None or not target.is_enabled or not target.webhook_url:
            return None
        return target

    def upsert(
        self,
        content_type: str,
        webhook_url: str,
        *,
        channel_name: str = "",
        is_enabled: bool = True,
    ) -> WebhookTarget:
        if content_type not in PUBLISH_CONTENT_TYPES:
            raise ValueError(f"content_type must be one of {PUBLISH_CONTENT_TYPES}")
        if not webhook_url.startswith("https://"):
            raise ValueError("webhook_url must be an https:// URL")

        target = WebhookTarget(
            content_type=content_type,
            webhook_url=webhook_url,
            channel_name=channel_name,
            is_enabled=is_enabled,
            updated_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        )
        with self._lock:
            self._targets[content_type] = target
            self._save()
        logger.info("[webhook_config] saved target for %s (enabled=%s)", content_type, is_enabled)
        return target

    def disable(self, content_type: str) -> bool:
        with self._lock:
            target = self._targets.get(content_type)
            if target is None:
                return False
            self._targets[content_type] = WebhookTarget(
                content_type=target.content_type,
                webhook_url=target.webhook_url,
                channel_name=target.channel_name,
                is_enabled=False,
                updated_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
            )
            self._save()
        logger.info("[webhook_config] disabled target for %s", content_type)
        return True

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            for content_type, data in raw.get("targets", {}).items():
                self._targets[content_type] = WebhookTarget(
                    content_type=content_type,
                    webhook_url=data.get("webhook_url", ""),
                    channel_name=data.get("channel_name", ""),
                    is_enabled=bool(data.get("is_enabled", True)),
                    updated_at=data.get("updated_at", ""),
                )
        except (json.JSONDecodeError, OSError, AttributeError) as exc:
            logger.warning(
                "Failed to load webhook config from %s: %s", self._path, exc, exc_info=True,
            )

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "targets": {
                k: {key: value for key, value in asdict(t).items() if key != "content_type"}
                for k, t in self._targets.items()
            },
        }
        self._path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
