"""
Tests for urgent-report export and webhook delivery.
"""

import json
from unittest.mock import MagicMock, patch

import pandas as pd
import requests

from stock_tracker import data_handler
from stock_tracker.urgency import aggregate


class TestSaveUrgentReport:
    def test_writes_csv_and_json(self, tmp_path, now, make_item, monkeypatch):
        monkeypatch.setattr(data_handler.settings, "SAVE_JSON_OUTPUT", True)
        report = aggregate([make_item("Ham", days=-2), make_item("Milk", days=3), make_item("Rice", days=90)], now)

        csv_path = data_handler.save_urgent_report(report, now, output_dir=tmp_path)

        assert csv_path == tmp_path / "urgent_items_2024-03-10.csv"
        df = pd.read_csv(csv_path)
        assert list(df["Name"]) == ["Ham", "Milk"]
        assert list(df["Status"]) == ["Expired", "Warning"]
        assert list(df["Days Remaining"]) == [-2, 3]

        rows = json.loads((tmp_path / "urgent_items_2024-03-10.json").read_text())
        assert rows[0]["Expiration Date"] == "2024-03-08"

    def test_json_optional(self, tmp_path, now, make_item, monkeypatch):
        monkeypatch.setattr(data_handler.settings, "SAVE_JSON_OUTPUT", False)
        report = aggregate([make_item(days=1)], now)

        data_handler.save_urgent_report(report, now, output_dir=tmp_path)

        assert not list(tmp_path.glob("*.json"))

    def test_nothing_urgent_writes_nothing(self, tmp_path, now, make_item):
        report = aggregate([make_item(days=90)], now)
        assert data_handler.save_urgent_report(report, now, output_dir=tmp_path) is None
        assert not list(tmp_path.iterdir())

    def test_rows_built_once_for_csv_and_json(self, tmp_path, now, make_item, monkeypatch):
        monkeypatch.setattr(data_handler.settings, "SAVE_JSON_OUTPUT", True)
        report = aggregate([make_item("Ham", days=-2)], now)

        with patch.object(data_handler, "build_report_rows", wraps=data_handler.build_report_rows) as rows:
            data_handler.save_urgent_report(report, now, output_dir=tmp_path)

        rows.assert_called_once_with(report)
        assert len(list(tmp_path.iterdir())) == 2

    def test_report_frame_columns(self):
        df = data_handler.build_report_frame([])
        assert list(df.columns) == [
            "ID", "Name", "Category", "Quantity", "Expiration Date", "Alarm Days", "Status", "Days Remaining"
        ]


class TestPostAlertToWebhook:
    def test_skips_without_url(self, now, make_item, monkeypatch):
        monkeypatch.setattr(data_handler.settings, "WEBHOOK_URL", None)
        with patch("stock_tracker.data_handler.requests.post") as mock_post:
            assert not data_handler.post_alert_to_webhook(aggregate([make_item(days=1)], now), "u1")
        mock_post.assert_not_called()

    def test_posts_payload(self, now, make_item, monkeypatch):
        monkeypatch.setattr(data_handler.settings, "WEBHOOK_URL", "https://hooks.test/alert")
        report = aggregate([make_item("Ham", days=-1), make_item("Milk", days=2)], now)

        with patch("stock_tracker.data_handler.requests.post") as mock_post:
            mock_post.return_value = MagicMock(raise_for_status=MagicMock())
            assert data_handler.post_alert_to_webhook(report, "u1")

        args, kwargs = mock_post.call_args
        assert args[0] == "https://hooks.test/alert"
        assert kwargs["timeout"] == 15
        assert kwargs["json"]["userId"] == "u1"
        assert kwargs["json"]["summary"] == {"expired": 1, "warning": 1}
        assert [row["Name"] for row in kwargs["json"]["urgentItems"]] == ["Ham", "Milk"]

    def test_request_error_returns_false(self, now, make_item, monkeypatch):
        monkeypatch.setattr(data_handler.settings, "WEBHOOK_URL", "https://hooks.test/alert")
        with patch(
            "stock_tracker.data_handler.requests.post",
            side_effect=requests.exceptions.ConnectionError("down"),
        ):
            assert not data_handler.post_alert_to_webhook(aggregate([make_item(days=1)], now), "u1")
