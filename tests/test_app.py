"""
Tests for the StockTrackerApp controller, wired to an in-memory store.
"""

from datetime import timedelta
from unittest.mock import MagicMock

from conftest import NOW, gemini_body, item_document, make_response
from stock_tracker.app import StockTrackerApp, parse_item_documents
from stock_tracker.errors import IdentityError, StoreWriteError, SubscriptionError
from stock_tracker.identity import StaticIdentity
from stock_tracker.store import JsonFileStore, StockStore, Subscription


def fill_draft(app, name="Milk", days=3, quantity=2):
    app.set_draft_field("name", name)
    app.set_draft_field("expiration_date", (NOW.date() + timedelta(days=days)).isoformat())
    app.set_draft_field("quantity", quantity)


class TestStartup:
    def test_loads_existing_items_sorted(self, store, caller):
        store.add_item("user-1", item_document("Rice", 90))
        store.add_item("user-1", item_document("Milk", 20))

        app = StockTrackerApp(store, StaticIdentity("user-1"), caller=caller, clock=lambda: NOW)
        app.start()

        assert app.user_id == "user-1"
        assert [item.name for item in app.state.items] == ["Milk", "Rice"]
        assert not app.state.loading

    def test_identity_failure_falls_back_to_random_id(self, store, caller):
        identity = MagicMock()
        identity.sign_in.side_effect = IdentityError("offline")

        app = StockTrackerApp(store, identity, caller=caller, clock=lambda: NOW)
        app.start()

        assert app.user_id
        assert not app.state.loading

    def test_subscription_error_keeps_last_snapshot(self, caller):
        store = MagicMock(spec=StockStore)
        store.subscribe_items.return_value = Subscription(lambda: None)
        store.subscribe_names.return_value = Subscription(lambda: None)
        app = StockTrackerApp(store, StaticIdentity("user-1"), caller=caller, clock=lambda: NOW)
        app.start()

        on_snapshot = store.subscribe_items.call_args[0][1]
        on_error = store.subscribe_items.call_args[0][2]
        on_snapshot([item_document("Milk", 30) | {"id": "a"}])
        on_error(SubscriptionError("lost connection"))

        assert [item.name for item in app.state.items] == ["Milk"]
        assert app.state.error_message == "Could not load the items."

    def test_stop_unsubscribes(self, app, store):
        app.stop()
        store.add_item("user-1", item_document("Milk", 3))
        assert app.state.items == ()

    def test_unreadable_documents_are_skipped(self):
        items = parse_item_documents([
            item_document("Milk", 3) | {"id": "a"},
            {"id": "b", "name": "Broken", "expirationDate": "someday"},
            item_document("Eggs", 3, quantity="0", alarmDays=None, category="??") | {"id": "c"},
        ])

        assert [item.id for item in items] == ["a", "c"]
        assert items[1].quantity == 1
        assert items[1].alarm_days == 7
        assert items[1].category == "General"

    def test_unreadable_created_at_keeps_item(self, store, caller):
        store.add_item("user-1", item_document("Ham", -1, createdAt="yesterday"))

        app = StockTrackerApp(store, StaticIdentity("user-1"), caller=caller, clock=lambda: NOW)
        app.start()

        [item] = app.state.items
        assert item.created_at is None
        assert [entry.item.name for entry in app.urgency_report().expired] == ["Ham"]
        assert app.state.alert_pending

    def test_store_file_with_wrong_layout_does_not_crash_start(self, tmp_path, caller):
        file_path = tmp_path / "store.json"
        file_path.write_text("[]", encoding="utf-8")

        app = StockTrackerApp(JsonFileStore(file_path), StaticIdentity("user-1"), caller=caller, clock=lambda: NOW)
        app.start()

        assert app.state.items == ()
        assert app.state.error_message == "Could not load the items."
        assert not app.state.loading


class TestItemWrites:
    def test_add_item(self, app):
        fill_draft(app, "  Milk  ")

        assert app.add_item()

        [item] = app.state.items
        assert item.name == "Milk"
        assert item.quantity == 2
        assert item.created_at == NOW
        assert app.state.draft.name == ""
        assert "Milk" in app.state.common_names

    def test_invalid_draft_never_reaches_store(self, caller):
        store = MagicMock(spec=StockStore)
        app = StockTrackerApp(store, StaticIdentity("user-1"), caller=caller, clock=lambda: NOW)
        app.start()
        app.set_draft_field("name", "Milk")

        assert not app.add_item()
        store.add_item.assert_not_called()
        assert app.state.error_message == "Please fill in all required fields correctly."

    def test_non_positive_quantity_coerced_before_submit(self, app):
        fill_draft(app, quantity=-3)
        assert app.state.draft.quantity == 1
        assert app.add_item()
        assert app.state.items[0].quantity == 1

    def test_store_failure_becomes_message(self, caller):
        store = MagicMock(spec=StockStore)
        store.add_item.side_effect = StoreWriteError("offline")
        app = StockTrackerApp(store, StaticIdentity("user-1"), caller=caller, clock=lambda: NOW)
        app.start()
        fill_draft(app)

        assert not app.add_item()
        assert app.state.error_message == "Error saving the item."
        assert app.state.draft.name == "Milk"
        store.set_name.assert_not_called()

    def test_known_name_not_saved_again(self, app, store):
        store.set_name = MagicMock(wraps=store.set_name)
        fill_draft(app)
        app.add_item()
        fill_draft(app)
        app.add_item()

        store.set_name.assert_called_once()

    def test_common_name_failure_is_not_surfaced(self, app, store):
        store.set_name = MagicMock(side_effect=StoreWriteError("names offline"))
        fill_draft(app)

        assert app.add_item()
        assert app.state.error_message is None

    def test_update_item(self, app):
        fill_draft(app)
        app.add_item()
        item_id = app.state.items[0].id

        app.begin_edit(item_id)
        app.set_edit_field("name", "Oat Milk")
        app.set_edit_field("alarm_days", 0)
        assert app.update_item()

        [item] = app.state.items
        assert item.id == item_id
        assert item.name == "Oat Milk"
        assert item.alarm_days == 1
        assert app.state.editing is None
        assert "Oat Milk" in app.unified_names

    def test_update_with_invalid_edit(self, app):
        fill_draft(app)
        app.add_item()
        app.begin_edit(app.state.items[0].id)
        app.set_edit_field("name", " ")

        assert not app.update_item()
        assert app.state.error_message == "Please fill in all edit fields correctly."
        assert app.state.editing is not None

    def test_begin_edit_unknown_item(self, app):
        app.begin_edit("missing")
        assert app.state.editing is None
        assert app.state.error_message == "That item no longer exists."

    def test_delete_item(self, app):
        fill_draft(app)
        app.add_item()

        assert app.delete_item(app.state.items[0].id)
        assert app.state.items == ()

    def test_delete_failure(self, caller):
        store = MagicMock(spec=StockStore)
        store.delete_item.side_effect = StoreWriteError("offline")
        app = StockTrackerApp(store, StaticIdentity("user-1"), caller=caller, clock=lambda: NOW)
        app.start()

        assert not app.delete_item("x")
        assert app.state.error_message == "Error deleting the item."


class TestImport:
    def test_import_names(self, app):
        app.set_import_text("Milk\nMilk\n\nCheese, 2\nSalt/Pepper")

        assert app.import_names()

        assert sorted(app.state.common_names) == ["Cheese", "Milk", "Salt/Pepper"]
        assert app.state.import_text == ""
        assert app.state.error_message == (
            "Name import complete: 3 unique names added/updated. 1 lines ignored."
        )

    def test_empty_import_rejected(self, app):
        app.set_import_text("  \n ")
        assert not app.import_names()
        assert "no data to import" in app.state.error_message

    def test_commit_failure_reports_total_failure(self, app, store):
        store.batch_upsert_names = MagicMock(side_effect=StoreWriteError("quota"))
        app.set_import_text("Milk")

        assert not app.import_names()
        assert "nothing was imported" in app.state.error_message
        assert app.state.import_text == "Milk"
        assert app.state.common_names == ()


class TestAlerts:
    def test_no_items_no_alert(self, app):
        assert not app.state.alert_pending
        assert app.urgency_report().all == []

    def test_alert_lifecycle(self, app):
        fill_draft(app, "Milk", days=3)
        app.add_item()
        assert app.state.alert_pending
        assert len(app.urgency_report().warning) == 1

        app.acknowledge_alert()
        fill_draft(app, "Yogurt", days=2)
        app.add_item()
        assert not app.state.alert_pending

        for item in app.state.items:
            app.delete_item(item.id)
        fill_draft(app, "Ham", days=-1)
        app.add_item()
        assert app.state.alert_pending
        assert len(app.urgency_report().expired) == 1

    def test_tick_raises_alert_when_items_age(self, store, caller):
        clock = MagicMock(return_value=NOW)
        app = StockTrackerApp(store, StaticIdentity("user-1"), caller=caller, clock=clock)
        app.start()
        fill_draft(app, days=30)
        app.add_item()
        assert not app.state.alert_pending

        clock.return_value = NOW + timedelta(days=25)
        app.tick()
        assert app.state.alert_pending


class TestSuggestions:
    def test_usage_suggestion(self, app, mock_session):
        mock_session.post.return_value = make_response(200, gemini_body("Make a smoothie."))
        fill_draft(app)
        app.add_item()

        app.generate_usage_suggestion(app.state.items[0].id)

        assert app.state.generation_text == "Make a smoothie."
        assert app.state.show_generation
        assert not app.state.generation_loading
        sent = mock_session.post.call_args.kwargs["json"]
        assert '"Milk"' in sent["contents"][0]["parts"][0]["text"]

    def test_failure_text_replaces_generated_text(self, app, mock_session):
        mock_session.post.return_value = make_response(500, {"error": {"message": "internal"}})
        fill_draft(app)
        app.add_item()

        app.generate_usage_suggestion(app.state.items[0].id)

        assert app.state.generation_text == "Error: internal"
        assert app.state.show_generation

    def test_action_plan_requires_urgent_items(self, app, mock_session):
        app.generate_action_plan()

        mock_session.post.assert_not_called()
        assert app.state.error_message == "There are no expired or alarming items to plan for."

    def test_action_plan(self, app, mock_session):
        mock_session.post.return_value = make_response(200, gemini_body("Cook the ham today."))
        fill_draft(app, "Ham", days=-1)
        app.add_item()

        app.generate_action_plan()

        sent = mock_session.post.call_args.kwargs["json"]
        assert "[Expired] Ham" in sent["contents"][0]["parts"][0]["text"]
        assert app.state.generation_text == "Cook the ham today."

        app.dismiss_generation()
        assert not app.state.show_generation
