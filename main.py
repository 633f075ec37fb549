from stock_tracker import data_handler, settings
from stock_tracker.app import StockTrackerApp
from stock_tracker.identity import EnvIdentity
from stock_tracker.logger import setup_logger
from stock_tracker.store import JsonFileStore
from stock_tracker.urgency import format_urgent_list

logger = setup_logger()


def run_daily_check():
    """Loads the local store, reports urgent items, and sends the alert."""
    logger.info("🚀 STEP: DAILY EXPIRATION CHECK")
    logger.info("-" * 30)

    app = StockTrackerApp(JsonFileStore(settings.STORE_FILE), EnvIdentity())
    app.start()
    try:
        if app.state.error_message:
            logger.error(f"❌ {app.state.error_message}")
            return

        report = app.urgency_report()
        logger.info(
            f"Tracked items: {len(app.state.items)} | "
            f"Expired: {len(report.expired)} | Warning: {len(report.warning)}"
        )

        if not app.state.alert_pending:
            logger.info("✅ Nothing is expired or close to expiring.")
            return

        logger.info("\n--- Urgent Items ---")
        logger.info(format_urgent_list(report))

        data_handler.save_urgent_report(report, app.clock())
        data_handler.post_alert_to_webhook(report, app.user_id)
        app.acknowledge_alert()
    finally:
        app.stop()

    logger.info("\n--- Process Finished Successfully ---")


if __name__ == "__main__":
    run_daily_check()
