"""Delivery log -- one append-only record per Slack delivery attempt."""

from __future__ import annotations

import csv
import io
import json
import logging
import threading
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal

from ..config import settings
from ..util.singletons import register_singleton

logger = logging.getLogger(__name__)

DeliveryStatus = Literal["success", "failed", "skipped"]
DELIVERY_STATUSES: tuple[str, ...] = ("success", "failed", "skipped")


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def _parse_ts(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class DeliveryLogEntry:
    """A single delivery attempt. Never mutated once written."""

    id: str
    recipient: str
    display_name: str = ""
    status: str = "success"
    error_message: str | None = None
    payload_size: int = 0
    delivered_at: str = ""
    content_type: str | None = None
    content_id: str | None = None
    channel_name: str | None = None
    response_code: int | None = None


class DeliveryLogStore:
    """JSON-lines file of delivery attempts with an in-memory index.

    Lives at ``data_dir/delivery_logs.jsonl``. Appends are serialised with a
    lock; readers get newest-first snapshots.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or settings.cfg.delivery_log_path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._entries: list[DeliveryLogEntry] = []
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        if not self._path.exists():
            return
        with self._lock:
            try:
                lines = self._path.read_text(encoding="utf-8").splitlines()
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("[delivery_log] failed to load: %s", exc)
                return
            for lineno, line in enumerate(lines, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                    self._entries.append(DeliveryLogEntry(**{
                        k: v for k, v in data.items()
                        if k in DeliveryLogEntry.__dataclass_fields__
                    }))
                except (json.JSONDecodeError, TypeError, AttributeError) as exc:
                    logger.warning("[delivery_log] skipping bad line %d: %s", lineno, exc)

    def append(
        self,
        recipient: str,
        *,
        display_name: str = "",
        status: DeliveryStatus = "success",
        error_message: str | None = None,
        payload_size: int = 0,
        content_type: str | None = None,
        content_id: str | None = None,
        channel_name: str | None = None,
        response_code: int | None = None,
    ) -> DeliveryLogEntry:
        if status not in DELIVERY_STATUSES:
            raise ValueError(f"Unknown delivery status: {status}")
        entry = DeliveryLogEntry(
            id=str(uuid.uuid4()),
            recipient=recipient,
            display_name=display_name,
            status=status,
            error_message=None if status == "success" else error_message,
            payload_size=payload_size,
            delivered_at=_utcnow(),
            content_type=content_type,
            content_id=content_id,
            channel_name=channel_name,
            response_code=response_code,
        )
        with self._lock:
            with open(self._path, "a", encoding="utf-8") as f:
                f.write(json.dumps(asdict(entry), ensure_ascii=False) + "\n")
            self._entries.append(entry)
        return entry

    def _snapshot(self) -> list[DeliveryLogEntry]:
        with self._lock:
            return list(reversed(self._entries))

    def query(
        self,
        *,
        status: str = "",
        content_type: str = "",
        recipient: str = "",
        since: str = "",
        limit: int = 100,
        offset: int = 0,
    ) -> dict[str, Any]:
        """Newest-first page of entries matching every given filter."""
        entries = self._snapshot()

        if status:
            entries = [e for e in entries if e.status == status]
        if content_type:
            entries = [e for e in entries if e.content_type == content_type]
        if recipient:
            entries = [e for e in entries if e.recipient == recipient]
        if since:
            cutoff = _parse_ts(since)
            if cutoff is None:
                raise ValueError(f"Invalid 'since' timestamp: {since}")
            entries = [
                e for e in entries
                if (ts := _parse_ts(e.delivered_at)) is not None and ts >= cutoff
            ]

        total = len(entries)
        limit, offset = max(limit, 0), max(offset, 0)
        page = entries[offset : offset + limit]
        return {
            "entries": [asdict(e) for e in page],
            "total": total,
            "offset": offset,
            "limit": limit,
        }

    def get_entry(self, entry_id: str) -> dict[str, Any] | None:
        with self._lock:
            for e in self._entries:
                if e.id == entry_id:
                    return asdict(e)
        return None

    def get_summary(self) -> dict[str, Any]:
        """Aggregate counts, payload sizes and the last failure."""
        entries = self._snapshot()

        by_status: dict[str, int] = {}
        by_content_type: dict[str, int] = {}
        sizes: list[int] = []
        for e in entries:
            by_status[e.status] = by_status.get(e.status, 0) + 1
            key = e.content_type or "unknown"
            by_content_type[key] = by_content_type.get(key, 0) + 1
            if e.status == "success":
                sizes.append(e.payload_size)

        last_failure = next((e for e in entries if e.status == "failed"), None)
        return {
            "total": len(entries),
            "by_status": by_status,
            "by_content_type": by_content_type,
            "avg_payload_size": round(sum(sizes) / len(sizes), 1) if sizes else 0,
            "last_delivery_at": entries[0].delivered_at if entries else None,
            "last_failure": asdict(last_failure) if last_failure else None,
        }

    def export_csv(self, **filters: Any) -> str:
        """Export filtered entries as CSV string."""
        data = self.query(**filters, limit=10000)
        output = io.StringIO()
        writer = csv.writer(output)
        columns = list(DeliveryLogEntry.__dataclass_fields__)
        writer.writerow(columns)
        for e in data["entries"]:
            writer.writerow(["" if e[c] is None else e[c] for c in columns])
        return output.getvalue()


class DeliveryLogger:
    """Records delivery outcomes without ever failing the caller."""

    def __init__(self, store: DeliveryLogStore | None = None) -> None:
        self._store = store

    @property
    def store(self) -> DeliveryLogStore:
        return self._store or get_delivery_log_store()

    def log(
        self,
        recipient: str,
        display_name: str,
        status: str,
        error_message: str | None = None,
        payload_size: int = 0,
        **publish_fields: Any,
    ) -> DeliveryLogEntry | None:
        try:
            entry = self.store.append(
                recipient,
                display_name=display_name,
                status=status,
                error_message=error_message,
                payload_size=payload_size,
                **publish_fields,
            )
        except Exception:
            logger.error(
                "[delivery_log.write] could not record %s delivery to %s",
                status, recipient, exc_info=True,
            )
            return None
        logger.info(
            "[delivery_log.write] %s -> %s (%d bytes)", status, recipient, payload_size,
        )
        return entry


# -- Singleton access ------------------------------------------------------

_instance: DeliveryLogStore | None = None


def get_delivery_log_store() -> DeliveryLogStore:
    """Return the global DeliveryLogStore singleton."""
    global _instance
    if _instance is None:
        _instance = DeliveryLogStore()
    return _instance


def _reset_delivery_log_store() -> None:
    global _instance
    _instance = None


register_singleton(_reset_delivery_log_store)
