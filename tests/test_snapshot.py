"""Unit tests for snapshot loading and simulation."""

import logging

import pandas as pd
import pytest

from cohort_retention.cohort_analysis import build_report
from cohort_retention.config import ORDER_STATUSES, RetentionParams
from cohort_retention.errors import InputUnavailable
from cohort_retention.snapshot import SimParams, Snapshot, load_snapshot, simulate_snapshot


def _write_tables(tmp_path, orders, items):
    orders_path, items_path = tmp_path / "orders.csv", tmp_path / "order_items.csv"
    orders.to_csv(orders_path, index=False)
    items.to_csv(items_path, index=False)
    return orders_path, items_path


class TestLoadSnapshot:
    """Test suite for loading CSV exports."""

    def test_loads_warehouse_columns(self, tmp_path):
        orders = pd.DataFrame({
            "order_id": [1, 2],
            "user_id": [10, 11],
            "status": ["Complete", "Cancelled"],
            "created_at": ["2023-01-05 10:00:00+00:00", "2023-01-06 11:00:00+00:00"],
        })
        items = pd.DataFrame({
            "id": [1, 2],
            "order_id": [1, 2],
            "user_id": [10, 11],
            "sale_price": [19.99, 5.0],
            "created_at": ["2023-01-05 10:00:00+00:00", "2023-01-06 11:00:00+00:00"],
        })
        snapshot = load_snapshot(*_write_tables(tmp_path, orders, items))
        assert list(snapshot.orders["customer_id"]) == [10, 11]
        assert snapshot.orders["created_at"].dt.tz is None
        assert snapshot.orders.loc[0, "created_at"] == pd.Timestamp("2023-01-05 10:00")
        assert snapshot.items["sale_price"].sum() == pytest.approx(24.99)

    def test_missing_file_raises_input_unavailable(self, tmp_path):
        with pytest.raises(InputUnavailable, match="cannot read orders"):
            load_snapshot(tmp_path / "missing.csv", tmp_path / "also_missing.csv")

    def test_empty_file_raises_input_unavailable(self, tmp_path):
        (tmp_path / "orders.csv").write_text("")
        (tmp_path / "order_items.csv").write_text("order_id,sale_price\n")
        with pytest.raises(InputUnavailable):
            load_snapshot(tmp_path / "orders.csv", tmp_path / "order_items.csv")

    def test_missing_columns_raise_input_unavailable(self, tmp_path):
        orders = pd.DataFrame({"order_id": [1], "status": ["Complete"]})
        items = pd.DataFrame({"order_id": [1], "sale_price": [1.0]})
        with pytest.raises(InputUnavailable, match="customer_id, created_at"):
            load_snapshot(*_write_tables(tmp_path, orders, items))

    def test_unparseable_timestamps_become_missing(self):
        orders = pd.DataFrame({
            "order_id": [1], "customer_id": [1], "status": ["Complete"], "created_at": ["yesterday-ish"],
        })
        snapshot = Snapshot.from_frames(orders, pd.DataFrame({"order_id": [1], "sale_price": [1.0]}))
        assert snapshot.orders["created_at"].isna().all()


class TestSimulateSnapshot:
    """Test suite for the synthetic snapshot."""

    def test_same_seed_same_snapshot(self):
        a = simulate_snapshot(SimParams(n_customers=50, seed=1))
        b = simulate_snapshot(SimParams(n_customers=50, seed=1))
        pd.testing.assert_frame_equal(a.orders, b.orders)
        pd.testing.assert_frame_equal(a.items, b.items)

    def test_shape_of_simulated_tables(self):
        snapshot = simulate_snapshot(SimParams(n_customers=80, seed=5))
        orders, items = snapshot.orders, snapshot.items
        assert orders["customer_id"].nunique() == 80
        assert set(orders["status"]) <= set(ORDER_STATUSES)
        assert set(items["order_id"]) == set(orders["order_id"])
        assert (items["sale_price"] > 0).all()
        assert orders["created_at"].min() >= pd.Timestamp("2022-07-01")


class TestTimestampParsing:
    """Test suite for created_at parsing in loaded snapshots."""

    def test_mixed_precision_timestamps_all_parse(self, tmp_path):
        orders = pd.DataFrame({
            "order_id": [1, 2],
            "user_id": [10, 11],
            "status": ["Complete", "Complete"],
            "created_at": ["2023-01-05 10:00:00.123456+00:00", "2023-01-06 11:00:00+00:00"],
        })
        items = pd.DataFrame({"order_id": [1, 2], "sale_price": [10.0, 20.0]})
        snapshot = load_snapshot(*_write_tables(tmp_path, orders, items))
        assert list(snapshot.orders["created_at"]) == [
            pd.Timestamp("2023-01-05 10:00:00.123456"),
            pd.Timestamp("2023-01-06 11:00:00"),
        ]
        report = build_report(snapshot, RetentionParams(cohort_start=None, cohort_end=None))
        assert report.loc[0, "initial_customers"] == 2

    def test_unparseable_values_are_logged(self, caplog):
        orders = pd.DataFrame({
            "order_id": [1, 2],
            "customer_id": [1, 2],
            "status": ["Complete", "Complete"],
            "created_at": ["2023-01-05", "yesterday-ish"],
        })
        items = pd.DataFrame({"order_id": [1, 2], "sale_price": ["9.50", "n/a"]})
        with caplog.at_level(logging.WARNING, logger="cohort_retention.snapshot"):
            Snapshot.from_frames(orders, items)
        assert "orders.created_at: 1 values could not be parsed" in caplog.text
        assert "order_items.sale_price: 1 values could not be parsed" in caplog.text

    def test_missing_values_are_not_reported_as_unparseable(self, caplog):
        orders = pd.DataFrame({
            "order_id": [1], "customer_id": [1], "status": ["Complete"], "created_at": [None],
        })
        with caplog.at_level(logging.WARNING, logger="cohort_retention.snapshot"):
            Snapshot.from_frames(orders, pd.DataFrame({"order_id": [1], "sale_price": [None]}))
        assert "could not be parsed" not in caplog.text
