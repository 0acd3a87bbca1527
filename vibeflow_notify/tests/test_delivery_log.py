"""Tests for the delivery log store and logger."""

from __future__ import annotations

import csv
import io
import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from vibeflow_notify.state.delivery_log import (
    DeliveryLogger,
    DeliveryLogStore,
    get_delivery_log_store,
)


@pytest.fixture()
def store(data_dir: Path) -> DeliveryLogStore:
    return DeliveryLogStore(data_dir / "delivery_logs.jsonl")


class TestDeliveryLogStore:
    def test_append_persists_one_line(self, store: DeliveryLogStore):
        entry = store.append("U1", display_name="Ana", status="success", payload_size=120)

        lines = store.path.read_text().splitlines()
        assert len(lines) == 1
        data = json.loads(lines[0])
        assert data["id"] == entry.id
        assert data["recipient"] == "U1"
        assert data["display_name"] == "Ana"
        assert data["payload_size"] == 120
        assert data["delivered_at"]

    def test_success_drops_error_message(self, store: DeliveryLogStore):
        entry = store.append("U1", status="success", error_message="ignored")
        assert entry.error_message is None

    def test_failed_keeps_error_verbatim(self, store: DeliveryLogStore):
        entry = store.append("U1", status="failed", error_message="Failed to open DM channel: x")
        assert entry.error_message == "Failed to open DM channel: x"

    def test_unknown_status_rejected(self, store: DeliveryLogStore):
        with pytest.raises(ValueError):
            store.append("U1", status="maybe")

    def test_reload_from_disk(self, store: DeliveryLogStore):
        store.append("U1", status="success")
        store.append("U2", status="failed", error_message="boom")

        reopened = DeliveryLogStore(store.path)
        assert reopened.query()["total"] == 2

    def test_reload_skips_corrupt_line(self, store: DeliveryLogStore, caplog):
        store.append("U1", status="success")
        with store.path.open("a", encoding="utf-8") as fh:
            fh.write('{"id": "partial\n')
            fh.write("[1, 2]\n")
        store.append("U2", status="success")
        store.append("U3", status="failed", error_message="boom")

        with caplog.at_level("WARNING", logger="vibeflow_notify.state.delivery_log"):
            reopened = DeliveryLogStore(store.path)
        result = reopened.query()
        assert result["total"] == 3
        assert [e["recipient"] for e in result["entries"]] == ["U3", "U2", "U1"]
        assert "skipping bad line 2" in caplog.text

    def test_negative_limit_and_offset_clamped(self, store: DeliveryLogStore):
        for i in range(3):
            store.append(f"U{i}", status="success")
        assert store.query(limit=-1)["entries"] == []
        assert store.query(offset=-5)["total"] == 3
        assert len(store.query(offset=-5)["entries"]) == 3

    def test_query_newest_first_and_filters(self, store: DeliveryLogStore):
        store.append("webhook", status="success", content_type="workflow")
        store.append("U1", status="failed", error_message="x", content_type="member_joined")
        store.append("webhook", status="skipped", content_type="blog_post")

        result = store.query()
        assert [e["status"] for e in result["entries"]] == ["skipped", "failed", "success"]
        assert store.query(status="failed")["total"] == 1
        assert store.query(content_type="workflow")["entries"][0]["recipient"] == "webhook"
        assert store.query(recipient="U1")["total"] == 1

    def test_query_pagination(self, store: DeliveryLogStore):
        for i in range(5):
            store.append(f"U{i}", status="success")
        page = store.query(limit=2, offset=1)
        assert page["total"] == 5
        assert [e["recipient"] for e in page["entries"]] == ["U3", "U2"]

    def test_query_since(self, store: DeliveryLogStore):
        store.append("U1", status="success")
        assert store.query(since="2000-01-01T00:00:00Z")["total"] == 1
        assert store.query(since="2999-01-01T00:00:00+00:00")["total"] == 0
        with pytest.raises(ValueError):
            store.query(since="not a date")

    def test_get_entry(self, store: DeliveryLogStore):
        entry = store.append("U1", status="success")
        assert store.get_entry(entry.id)["recipient"] == "U1"
        assert store.get_entry("missing") is None

    def test_summary(self, store: DeliveryLogStore):
        store.append("webhook", status="success", payload_size=100, content_type="workflow")
        store.append("webhook", status="success", payload_size=200, content_type="workflow")
        store.append("U1", status="failed", error_message="boom", content_type="member_joined")

        summary = store.get_summary()
        assert summary["total"] == 3
        assert summary["by_status"] == {"success": 2, "failed": 1}
        assert summary["by_content_type"] == {"workflow": 2, "member_joined": 1}
        assert summary["avg_payload_size"] == 150.0
        assert summary["last_failure"]["error_message"] == "boom"

    def test_summary_empty(self, store: DeliveryLogStore):
        summary = store.get_summary()
        assert summary["total"] == 0
        assert summary["last_failure"] is None
        assert summary["last_delivery_at"] is None

    def test_export_csv(self, store: DeliveryLogStore):
        store.append("U1", display_name="Ana", status="failed", error_message="boom")
        rows = list(csv.reader(io.StringIO(store.export_csv(status="failed"))))
        assert rows[0][:3] == ["id", "recipient", "display_name"]
        assert rows[1][1:3] == ["U1", "Ana"]
        assert len(rows) == 2

    def test_singleton_uses_data_dir(self, data_dir: Path):
        assert get_delivery_log_store() is get_delivery_log_store()
        assert get_delivery_log_store().path == data_dir / "delivery_logs.jsonl"


class TestDeliveryLogger:
    def test_log_appends(self, store: DeliveryLogStore):
        entry = DeliveryLogger(store).log("U1", "Ana", "success", payload_size=10)
        assert entry is not None
        assert store.query()["total"] == 1

    def test_log_never_raises(self, caplog):
        broken = MagicMock()
        broken.append.side_effect = OSError("disk full")

        with caplog.at_level("ERROR"):
            result = DeliveryLogger(broken).log("U1", "Ana", "failed", error_message="x")

        assert result is None
        assert "could not record" in caplog.text

    def test_publish_fields_passed_through(self, store: DeliveryLogStore):
        DeliveryLogger(store).log(
            "webhook", "#geral", "success",
            payload_size=5, content_type="workflow", content_id="w1",
            channel_name="#geral", response_code=200,
        )
        entry = store.query()["entries"][0]
        assert entry["content_id"] == "w1"
        assert entry["response_code"] == 200
