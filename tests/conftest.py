"""Small hand-built snapshots shared by the test suites."""

import pandas as pd
import pytest

from cohort_retention.snapshot import Snapshot


def make_snapshot(orders, items):
    """Build a Snapshot from (order_id, customer_id, status, created_at) and (order_id, sale_price) rows."""
    orders = pd.DataFrame(orders, columns=["order_id", "customer_id", "status", "created_at"])
    orders["created_at"] = pd.to_datetime(orders["created_at"], format="ISO8601")
    items = pd.DataFrame(items, columns=["order_id", "sale_price"])
    items.insert(0, "id", range(1, len(items) + 1))
    items["customer_id"] = items["order_id"].map(orders.set_index("order_id")["customer_id"])
    items["created_at"] = items["order_id"].map(orders.set_index("order_id")["created_at"])
    return Snapshot.from_frames(orders, items)


@pytest.fixture
def january_cohort():
    """100 customers acquired in January 2023; 25 return in February spending $100 each."""
    orders, items = [], []
    for customer in range(1, 101):
        orders.append((customer, customer, "Complete", "2023-01-10 12:00"))
        items.append((customer, 50.0))
    for customer in range(1, 26):
        order_id = 1000 + customer
        orders.append((order_id, customer, "Shipped", "2023-02-15 09:30"))
        items.append((order_id, 100.0))
    return make_snapshot(orders, items)


@pytest.fixture
def mixed_snapshot():
    """Two cohorts, non-qualifying statuses, a gap month and activity past month 12."""
    orders = [
        # customer 1: March 2023 cohort, returns in April, June and the next April (month 13)
        (1, 1, "Complete", "2023-03-05"),
        (2, 1, "Shipped", "2023-03-20"),
        (3, 1, "Complete", "2023-04-02"),
        (4, 1, "Complete", "2023-06-11"),
        (5, 1, "Complete", "2024-04-01"),
        # customer 2: cancelled in February, first qualifying order in March
        (6, 2, "Cancelled", "2023-02-14"),
        (7, 2, "Complete", "2023-03-30"),
        # customer 3: May 2023 cohort, a returned order later that does not count
        (8, 3, "Shipped", "2023-05-31 23:59"),
        (9, 3, "Returned", "2023-06-01"),
        (10, 3, "Complete", "2023-07-01"),
    ]
    items = [
        (1, 10.0), (1, 15.0),
        (2, 5.0),
        (3, 20.0),
        (4, 30.0),
        (5, 99.0),
        (6, 500.0),
        (7, 40.0),
        (8, 12.5),
        (9, 70.0),
        (10, 7.5),
    ]
    return make_snapshot(orders, items)
