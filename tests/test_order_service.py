from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from bistro_shared.errors import ConflictError, NotFoundError, TransactionError, ValidationError
from bistro_shared.services import menu_service, order_service, table_service

from .helpers import assert_store_consistent, count_orders, open_order


class TestCreateOrder:
    def test_totals_and_occupies_table(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 2))

        assert order["total_amount"] == 80000
        assert order["status"] == "pending"
        assert order["table_name"] == "T1"
        assert [(item["name"], item["quantity"], item["price"]) for item in order["items"]] == [
            ("Phở Bò", 2, 40000)
        ]
        assert table_service.get_table_status(store, tables["t1"]["id"]) == "occupied"
        assert_store_consistent(store)

    def test_accepts_camel_case_payload_and_caller_price(self, store, menu, tables):
        order = order_service.create_order(
            store,
            {
                "tableId": tables["t1"]["id"],
                "items": [
                    {"menuItemId": menu["pho"]["id"], "quantity": 1, "price": 38000},
                    {"menuItemId": menu["coffee"]["id"], "quantity": 2, "notes": "less ice"},
                ],
                "notes": "birthday",
            },
        )

        assert order["total_amount"] == 38000 + 2 * 20000
        assert order["notes"] == "birthday"
        assert order["items"][1]["notes"] == "less ice"

    def test_sub_cent_price_is_rejected(self, store, menu, tables):
        payload = {
            "table_id": tables["t1"]["id"],
            "items": [{"menu_item_id": menu["pho"]["id"], "quantity": 3, "price": "0.005"}],
        }

        with pytest.raises(ValidationError):
            order_service.create_order(store, payload)

        assert count_orders(store) == 0
        assert table_service.get_table_status(store, tables["t1"]["id"]) == "empty"

    def test_stored_total_matches_stored_lines(self, store, menu, tables):
        order = order_service.create_order(
            store,
            {
                "table_id": tables["t1"]["id"],
                "items": [
                    {"menu_item_id": menu["pho"]["id"], "quantity": 3, "price": "12.50"},
                    {"menu_item_id": menu["coffee"]["id"], "quantity": 1, "price": "0.01"},
                ],
            },
        )

        reloaded = order_service.get_order_by_id(store, order["id"])
        stored_sum = sum(
            Decimal(str(item["price"])) * item["quantity"] for item in reloaded["items"]
        )
        assert Decimal(str(reloaded["total_amount"])) == stored_sum == Decimal("37.51")
        assert Decimal(str(order["total_amount"])) == stored_sum
        assert_store_consistent(store)

    def test_one_row_per_input_line(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 1), (menu["pho"], 1))

        assert len(order["items"]) == 2
        assert order["total_amount"] == 80000

    def test_reserved_table_can_take_an_order(self, store, menu, tables):
        table_service.update_table_status(store, tables["t2"]["id"], "reserved")

        open_order(store, tables["t2"], (menu["coffee"], 1))

        assert table_service.get_table_status(store, tables["t2"]["id"]) == "occupied"

    def test_starting_status_may_be_any_open_status(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 1), status="preparing")

        assert order["status"] == "preparing"

    def test_terminal_starting_status_is_rejected(self, store, menu, tables):
        with pytest.raises(ValidationError):
            open_order(store, tables["t1"], (menu["pho"], 1), status="completed")

        assert count_orders(store) == 0

    def test_occupied_table_is_rejected(self, store, menu, tables):
        open_order(store, tables["t1"], (menu["pho"], 1))

        with pytest.raises(ConflictError):
            open_order(store, tables["t1"], (menu["bun_cha"], 1))

        assert count_orders(store) == 1
        assert_store_consistent(store)

    def test_table_in_maintenance_is_rejected(self, store, menu, tables):
        table_service.update_table_status(store, tables["t3"]["id"], "maintenance")

        with pytest.raises(ConflictError):
            open_order(store, tables["t3"], (menu["pho"], 1))

        assert table_service.get_table_status(store, tables["t3"]["id"]) == "maintenance"

    def test_unknown_table(self, store, menu):
        with pytest.raises(NotFoundError):
            order_service.create_order(
                store, {"table_id": 999, "items": [{"menu_item_id": menu["pho"]["id"], "quantity": 1}]}
            )

    @pytest.mark.parametrize(
        "bad_line, error",
        [
            (lambda menu: {"menu_item_id": 9999, "quantity": 1}, NotFoundError),
            (lambda menu: {"quantity": 1}, ValidationError),
            (lambda menu: {"menu_item_id": menu["sold_out"]["id"], "quantity": 1}, ConflictError),
            (lambda menu: {"menu_item_id": menu["bun_cha"]["id"], "quantity": 0}, ValidationError),
            (
                lambda menu: {"menu_item_id": menu["bun_cha"]["id"], "quantity": 1, "price": -5},
                ValidationError,
            ),
        ],
        ids=["unknown-item", "missing-item-id", "unavailable", "zero-quantity", "negative-price"],
    )
    def test_one_bad_line_writes_nothing(self, store, menu, tables, bad_line, error):
        payload = {
            "table_id": tables["t1"]["id"],
            "items": [
                {"menu_item_id": menu["pho"]["id"], "quantity": 2},
                {"menu_item_id": menu["coffee"]["id"], "quantity": 1},
                bad_line(menu),
            ],
        }

        with pytest.raises(error):
            order_service.create_order(store, payload)

        assert count_orders(store) == 0
        assert table_service.get_table_status(store, tables["t1"]["id"]) == "empty"

    def test_empty_items_rejected(self, store, tables):
        with pytest.raises(ValidationError):
            order_service.create_order(store, {"table_id": tables["t1"]["id"], "items": []})

    def test_store_failure_mid_transaction_rolls_everything_back(
        self, store, menu, tables, monkeypatch
    ):
        def failing_occupy(session, table):
            raise OperationalError("UPDATE tables", {}, Exception("disk I/O error"))

        monkeypatch.setattr(order_service, "_occupy_table", failing_occupy)

        with pytest.raises(TransactionError) as excinfo:
            open_order(store, tables["t1"], (menu["pho"], 2))

        assert isinstance(excinfo.value.__cause__, OperationalError)
        assert count_orders(store) == 0
        assert table_service.get_table_status(store, tables["t1"]["id"]) == "empty"

    def test_menu_price_changes_do_not_touch_existing_orders(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 2))

        menu_service.update_menu_item(store, menu["pho"]["id"], {"price": 50000})

        reloaded = order_service.get_order_by_id(store, order["id"])
        assert reloaded["total_amount"] == 80000
        assert reloaded["items"][0]["price"] == 40000


class TestAddOrderItems:
    def test_merges_existing_line(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 2))

        result = order_service.add_order_items(
            store, order["id"], [{"menuItemId": menu["pho"]["id"], "quantity": 1, "price": 40000}]
        )

        assert result == {
            "order_id": order["id"],
            "items_added": 1,
            "additional_amount": 40000,
            "new_total": 120000,
        }
        items = order_service.get_order_items(store, order["id"])
        assert [(item["menu_item_id"], item["quantity"]) for item in items] == [
            (menu["pho"]["id"], 3)
        ]
        assert_store_consistent(store)

    def test_same_item_twice_in_one_call_becomes_one_line(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["bun_cha"], 1))

        result = order_service.add_order_items(
            store,
            order["id"],
            [
                {"menu_item_id": menu["coffee"]["id"], "quantity": 1},
                {"menu_item_id": menu["coffee"]["id"], "quantity": 2},
            ],
        )

        items = order_service.get_order_items(store, order["id"])
        coffee_lines = [item for item in items if item["menu_item_id"] == menu["coffee"]["id"]]
        assert len(coffee_lines) == 1
        assert coffee_lines[0]["quantity"] == 3
        assert result["new_total"] == 35000 + 60000
        assert result["additional_amount"] == 60000

    def test_new_lines_use_current_menu_price(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 1))
        menu_service.update_menu_item(store, menu["coffee"]["id"], {"price": 22000})

        result = order_service.add_order_items(
            store, order["id"], [{"menu_item_id": menu["coffee"]["id"], "quantity": 1}]
        )

        assert result["new_total"] == 62000

    def test_merged_quantity_keeps_snapshot_price(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 1))
        menu_service.update_menu_item(store, menu["pho"]["id"], {"price": 45000})

        result = order_service.add_order_items(
            store, order["id"], [{"menu_item_id": menu["pho"]["id"], "quantity": 1}]
        )

        assert result["new_total"] == 80000

    def test_rejected_on_terminal_order(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 1))
        order_service.update_order_status(store, order["id"], "completed")

        with pytest.raises(ConflictError):
            order_service.add_order_items(
                store, order["id"], [{"menu_item_id": menu["pho"]["id"], "quantity": 1}]
            )

    def test_unavailable_item_leaves_order_untouched(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 1))

        with pytest.raises(ConflictError):
            order_service.add_order_items(
                store,
                order["id"],
                [
                    {"menu_item_id": menu["pho"]["id"], "quantity": 1},
                    {"menu_item_id": menu["sold_out"]["id"], "quantity": 1},
                ],
            )

        reloaded = order_service.get_order_by_id(store, order["id"])
        assert reloaded["total_amount"] == 40000
        assert reloaded["items"][0]["quantity"] == 1

    def test_unknown_order(self, store, menu):
        with pytest.raises(NotFoundError):
            order_service.add_order_items(
                store, 404, [{"menu_item_id": menu["pho"]["id"], "quantity": 1}]
            )


class TestUpdateOrderStatus:
    def test_complete_stamps_time_and_frees_table(self, store, menu, tables, waiter):
        order = open_order(store, tables["t1"], (menu["pho"], 1))

        result = order_service.update_order_status(store, order["id"], "completed", waiter["id"])

        assert result["status"] == "completed"
        assert result["previous_status"] == "pending"
        assert result["staff_id"] == waiter["id"]
        assert result["completed_at"] is not None
        assert result["table_released"] is True
        assert table_service.get_table_status(store, tables["t1"]["id"]) == "empty"
        assert order_service.get_order_by_id(store, order["id"])["staff_name"] == "Lan"
        assert_store_consistent(store)

    def test_intermediate_status_keeps_table_occupied(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 1))

        order_service.update_order_status(store, order["id"], "preparing")
        order_service.update_order_status(store, order["id"], "ready")

        assert order_service.get_order_by_id(store, order["id"])["completed_at"] is None
        assert table_service.get_table_status(store, tables["t1"]["id"]) == "occupied"

    def test_unknown_status(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 1))

        with pytest.raises(ValidationError):
            order_service.update_order_status(store, order["id"], "served")

    def test_unknown_staff_rolls_back(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 1))

        with pytest.raises(NotFoundError):
            order_service.update_order_status(store, order["id"], "completed", staff_id=77)

        assert order_service.get_order_by_id(store, order["id"])["status"] == "pending"
        assert table_service.get_table_status(store, tables["t1"]["id"]) == "occupied"


class TestCancelOrder:
    def test_cancel_with_reason(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 2))

        result = order_service.cancel_order(store, order["id"], "customer left")

        assert result["status"] == "cancelled"
        assert result["cancellation_reason"] == "customer left"
        assert table_service.get_table_status(store, tables["t1"]["id"]) == "empty"
        reloaded = order_service.get_order_by_id(store, order["id"])
        assert "Cancellation reason: customer left" in reloaded["notes"]
        assert_store_consistent(store)

    def test_reason_appended_to_existing_notes(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 1), notes="no onions")

        order_service.cancel_order(store, order["id"], "kitchen closed")

        notes = order_service.get_order_by_id(store, order["id"])["notes"]
        assert notes == "no onions\nCancellation reason: kitchen closed"

    def test_without_reason_keeps_notes(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 1), notes="window seat")

        result = order_service.cancel_order(store, order["id"])

        assert result["cancellation_reason"] is None
        assert order_service.get_order_by_id(store, order["id"])["notes"] == "window seat"

    def test_cannot_cancel_twice(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 1))
        order_service.cancel_order(store, order["id"])

        with pytest.raises(ConflictError):
            order_service.cancel_order(store, order["id"], "again")

    def test_cannot_cancel_completed(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 1))
        order_service.update_order_status(store, order["id"], "completed")

        with pytest.raises(ConflictError):
            order_service.cancel_order(store, order["id"])


class TestUpdateOrderItems:
    def test_edit_and_remove_lines(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 2), (menu["bun_cha"], 1))
        pho_line, bun_line = order["items"]

        result = order_service.update_order_items(
            store,
            order["id"],
            [
                {"id": pho_line["id"], "quantity": 1, "notes": "extra herbs"},
                {"id": bun_line["id"], "quantity": 0},
            ],
        )

        assert result["total_amount"] == 40000
        assert result["item_count"] == 1
        assert result["items_updated"] == 1
        assert result["items_removed"] == 1
        assert result["auto_cancelled"] is False
        items = order_service.get_order_items(store, order["id"])
        assert [(item["id"], item["quantity"], item["notes"]) for item in items] == [
            (pho_line["id"], 1, "extra herbs")
        ]
        assert_store_consistent(store)

    def test_removing_every_line_cancels_the_order(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 1))

        result = order_service.update_order_items(
            store, order["id"], [{"id": order["items"][0]["id"], "quantity": -1}]
        )

        assert result["auto_cancelled"] is True
        assert result["status"] == "cancelled"
        assert result["total_amount"] == 0
        assert table_service.get_table_status(store, tables["t1"]["id"]) == "empty"
        assert_store_consistent(store)

    def test_only_pending_orders(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 1))
        order_service.update_order_status(store, order["id"], "preparing")

        with pytest.raises(ConflictError):
            order_service.update_order_items(
                store, order["id"], [{"id": order["items"][0]["id"], "quantity": 3}]
            )

    def test_line_from_another_order(self, store, menu, tables):
        first = open_order(store, tables["t1"], (menu["pho"], 1))
        second = open_order(store, tables["t2"], (menu["coffee"], 1))

        with pytest.raises(NotFoundError):
            order_service.update_order_items(
                store,
                first["id"],
                [
                    {"id": first["items"][0]["id"], "quantity": 5},
                    {"id": second["items"][0]["id"], "quantity": 2},
                ],
            )

        assert order_service.get_order_items(store, first["id"])[0]["quantity"] == 1

    def test_duplicate_line_ids(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 1))
        line_id = order["items"][0]["id"]

        with pytest.raises(ValidationError):
            order_service.update_order_items(
                store, order["id"], [{"id": line_id, "quantity": 0}, {"id": line_id, "quantity": 2}]
            )


class TestDeleteOrder:
    def test_pending_order_frees_table(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 1))

        result = order_service.delete_order(store, order["id"])

        assert result == {"id": order["id"], "deleted": True, "table_released": True}
        assert count_orders(store) == 0
        assert table_service.get_table_status(store, tables["t1"]["id"]) == "empty"

    def test_cancelled_order(self, store, menu, tables):
        order = open_order(store, tables["t1"], (menu["pho"], 1))
        order_service.cancel_order(store, order["id"])
        # the table is taken again before the old order is purged
        open_order(store, tables["t1"], (menu["coffee"], 1))

        result = order_service.delete_order(store, order["id"])

        assert result["table_released"] is False
        assert table_service.get_table_status(store, tables["t1"]["id"]) == "occupied"
        assert_store_consistent(store)

    @pytest.mark.parametrize("status", ["preparing", "completed"])
    def test_other_statuses_are_kept(self, store, menu, tables, status):
        order = open_order(store, tables["t1"], (menu["pho"], 1))
        order_service.update_order_status(store, order["id"], status)

        with pytest.raises(ConflictError):
            order_service.delete_order(store, order["id"])

        assert count_orders(store) == 1


class TestReads:
    def test_get_order_by_id_joins_names(self, store, menu, tables, waiter):
        order = open_order(store, tables["t1"], (menu["pho"], 1), (menu["coffee"], 2))
        order_service.update_order_status(store, order["id"], "preparing", waiter["id"])

        result = order_service.get_order_by_id(store, order["id"])

        assert result["table_name"] == "T1"
        assert result["staff_name"] == "Lan"
        assert result["item_count"] == 3
        assert [item["category_name"] for item in result["items"]] == ["Main dishes", "Drinks"]
        assert result["items"][1]["subtotal"] == 40000

    def test_unknown_order(self, store):
        with pytest.raises(NotFoundError):
            order_service.get_order_by_id(store, 12)

    def test_active_orders_sorted_by_readiness_then_age(self, store, menu, tables):
        t4 = table_service.add_table(store, {"name": "T4"})
        oldest_pending = open_order(store, tables["t1"], (menu["pho"], 1))
        preparing = open_order(store, tables["t2"], (menu["pho"], 1))
        ready = open_order(store, tables["t3"], (menu["pho"], 1))
        newer_pending = open_order(store, t4, (menu["pho"], 1))
        order_service.update_order_status(store, preparing["id"], "preparing")
        order_service.update_order_status(store, ready["id"], "ready")

        active = order_service.get_active_orders(store)

        assert [order["id"] for order in active] == [
            ready["id"],
            preparing["id"],
            oldest_pending["id"],
            newer_pending["id"],
        ]
        assert [order["id"] for order in order_service.get_active_orders(store, limit=2)] == [
            ready["id"],
            preparing["id"],
        ]

    def test_orders_by_table(self, store, menu, tables):
        done = open_order(store, tables["t1"], (menu["pho"], 1))
        order_service.update_order_status(store, done["id"], "completed")
        current = open_order(store, tables["t1"], (menu["coffee"], 1))

        open_only = order_service.get_orders_by_table(store, tables["t1"]["id"])
        everything = order_service.get_orders_by_table(
            store, tables["t1"]["id"], include_completed=True
        )

        assert [order["id"] for order in open_only] == [current["id"]]
        assert {order["id"] for order in everything} == {done["id"], current["id"]}

    def test_filters(self, store, menu, tables, waiter):
        first = open_order(store, tables["t1"], (menu["pho"], 1))
        second = open_order(store, tables["t2"], (menu["coffee"], 1))
        order_service.update_order_status(store, second["id"], "completed", waiter["id"])

        assert [o["id"] for o in order_service.get_all_orders(store, {"status": "pending"})] == [
            first["id"]
        ]
        assert [o["id"] for o in order_service.get_all_orders(store, staff_id=waiter["id"])] == [
            second["id"]
        ]
        assert [o["id"] for o in order_service.get_all_orders(store, limit=1)] == [second["id"]]
        assert [o["id"] for o in order_service.get_orders_by_staff(store, waiter["id"])] == [
            second["id"]
        ]
        assert [o["id"] for o in order_service.get_completed_orders(store)] == [second["id"]]

    def test_invalid_filter_value(self, store):
        with pytest.raises(ValidationError):
            order_service.get_all_orders(store, {"status": "lost"})
