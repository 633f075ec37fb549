import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd
import requests

from . import settings
from . import utils
from .schemas import UrgencyReport, UrgentReportRow

logger = logging.getLogger(__name__)

REPORT_FILENAME_BASE = "urgent_items"


def build_report_rows(report: UrgencyReport) -> list[dict]:
    """One JSON-ready row per urgent item, keyed by the report schema aliases."""
    return [UrgentReportRow.from_entry(entry).model_dump(mode="json", by_alias=True) for entry in report.all]


def build_report_frame(rows: list[dict]) -> pd.DataFrame:
    columns = [info.alias for info in UrgentReportRow.model_fields.values()]
    return pd.DataFrame(rows, columns=columns)


def save_urgent_report(
    report: UrgencyReport, now: Optional[datetime] = None, output_dir: Optional[Path] = None
) -> Optional[Path]:
    """Saves the urgent items to a dated CSV and, if configured, JSON. Returns the CSV path."""
    if not report.is_urgent:
        logger.info("No urgent items; skipping report save.")
        return None

    output_dir = output_dir or settings.OUTPUT_DIR
    output_dir.mkdir(parents=True, exist_ok=True)
    date_suffix = utils.get_date_suffix_for_filename(now)
    rows = build_report_rows(report)

    csv_path = output_dir / f"{REPORT_FILENAME_BASE}_{date_suffix}.csv"
    build_report_frame(rows).to_csv(csv_path, index=False)
    logger.info(f"✅ Urgent report saved to: {csv_path}")

    if settings.SAVE_JSON_OUTPUT:
        json_path = output_dir / f"{REPORT_FILENAME_BASE}_{date_suffix}.json"
        with open(json_path, "w", encoding="utf-8") as f:
            json.dump(rows, f, indent=2)
        logger.info(f"✅ JSON output saved to: {json_path}")
    else:
        logger.info("Skipping JSON file save as per configuration.")

    return csv_path


def post_alert_to_webhook(report: UrgencyReport, user_id: str) -> bool:
    """
    Posts the urgent items and bucket counts to the webhook.
    Returns True only when the webhook accepted the payload.
    """
    if not settings.WEBHOOK_URL:
        logger.warning("⚠️ WEBHOOK_URL not set. Skipping webhook post.")
        return False

    logger.info(f"🚀 Posting {len(report.all)} urgent items to webhook.")

    payload = {
        "userId": user_id,
        "urgentItems": build_report_rows(report),
        "summary": {
            "expired": len(report.expired),
            "warning": len(report.warning),
        },
    }

    try:
        response = requests.post(settings.WEBHOOK_URL, json=payload, timeout=15)
        response.raise_for_status()
        logger.info("✅ Alert successfully posted to webhook.")
        return True
    except requests.exceptions.RequestException as e:
        logger.error(f"❌ Error posting to webhook: {e}")
        return False
