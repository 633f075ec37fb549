import argparse
from pathlib import Path

from stock_tracker import settings
from stock_tracker.app import StockTrackerApp
from stock_tracker.identity import EnvIdentity
from stock_tracker.logger import setup_logger
from stock_tracker.store import JsonFileStore
from stock_tracker.utils import load_text

logger = setup_logger()


def run_import(file_path: Path) -> bool:
    """Bulk-imports curated names (first column of each line) from a text/CSV export."""
    logger.info(f"--- Importing common names from {file_path.name} ---")

    text = load_text(file_path)
    if text is None:
        return False

    app = StockTrackerApp(JsonFileStore(settings.STORE_FILE), EnvIdentity())
    app.start()
    try:
        app.set_import_text(text)
        imported = app.import_names()
    finally:
        app.stop()

    if imported:
        logger.info(f"✅ {app.state.error_message}")
    else:
        logger.error(f"❌ {app.state.error_message}")
    return imported


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Import curated item names for autocomplete.")
    parser.add_argument("file", type=Path, help="Text or CSV file; the first column holds the name.")
    args = parser.parse_args()
    raise SystemExit(0 if run_import(args.file) else 1)
