"""
snapshot.py — Orders / order-items snapshot (loaded or synthetic)
-----------------------------------------------------------------
What this does
- Holds the immutable orders + order_items tables a report is computed from
- Loads them from CSV exports of the warehouse tables
- Generates a realistic synthetic snapshot for demos and tests

Author: You
License: MIT
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Iterable
import numpy as np
import pandas as pd

from .config import ORDER_STATUSES
from .errors import InputUnavailable

logger = logging.getLogger(__name__)

ORDER_COLUMNS = ("order_id", "customer_id", "status", "created_at")
ITEM_COLUMNS = ("order_id", "sale_price")
# the warehouse tables call the customer key user_id
COLUMN_ALIASES = {"user_id": "customer_id"}

@dataclass(frozen=True)
class Snapshot:
    orders:pd.DataFrame
    items:pd.DataFrame

    @classmethod
    def from_frames(cls, orders:pd.DataFrame, items:pd.DataFrame)->"Snapshot":
        return cls(_prepare("orders", orders, ORDER_COLUMNS), _prepare("order_items", items, ITEM_COLUMNS))

def _prepare(table:str, df:pd.DataFrame, required:Iterable[str])->pd.DataFrame:
    df = df.rename(columns={k: v for k, v in COLUMN_ALIASES.items() if k in df.columns and v not in df.columns})
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise InputUnavailable(f"{table} is missing required columns: {', '.join(missing)}")
    df = df.copy()
    for col, parse in (("created_at", to_naive_utc), ("sale_price", _to_number)):
        if col not in df.columns:
            continue
        parsed = parse(df[col])
        lost = int((df[col].notna() & parsed.isna()).sum())
        if lost:
            logger.warning("%s.%s: %d values could not be parsed and are treated as missing", table, col, lost)
        df[col] = parsed
    return df

def _to_number(s:pd.Series)->pd.Series:
    return pd.to_numeric(s, errors="coerce")

def to_naive_utc(s:pd.Series)->pd.Series:
    # ISO8601 parses each value on its own; Postgres exports drop zero fractional seconds
    s = pd.to_datetime(s, errors="coerce", utc=True, format="ISO8601")
    return s.dt.tz_localize(None)

def load_snapshot(orders_path, items_path)->Snapshot:
    frames = []
    for table, path in (("orders", orders_path), ("order_items", items_path)):
        try:
            frames.append(pd.read_csv(path))
        except (OSError, ValueError) as exc:
            raise InputUnavailable(f"cannot read {table} from {path}: {exc}") from exc
        logger.info("Loaded %s: %s rows from %s", table, f"{len(frames[-1]):,}", path)
    return Snapshot.from_frames(*frames)

@dataclass
class SimParams:
    n_customers:int=1500
    start:str="2022-07-01"
    months:int=30
    repeat_prob:float=0.32          # chance a customer orders again in their second month
    repeat_decay:float=0.93         # monthly decay of that chance
    status_mix:tuple=(0.45, 0.30, 0.12, 0.08, 0.05)  # aligned with ORDER_STATUSES
    max_items:int=4
    price_mean:float=58.0
    price_sd:float=22.0
    seed:int=7

def simulate_snapshot(p:SimParams=SimParams())->Snapshot:
    rng = np.random.RandomState(p.seed)
    start = pd.Timestamp(p.start)
    # distribute first purchases with mild growth
    probs = np.linspace(1.0, 1.6, p.months)
    probs = probs / probs.sum()
    first_months = rng.choice(p.months, size=p.n_customers, p=probs)

    orders, items = [], []
    for customer_id, first in enumerate(first_months, start=1):
        for m in range(int(first), p.months):
            rel = m - int(first)
            if rel > 0 and rng.rand() >= p.repeat_prob * p.repeat_decay**(rel - 1):
                continue
            created = start + pd.DateOffset(months=m, days=int(rng.randint(0, 28)), hours=int(rng.randint(0, 24)))
            order_id = len(orders) + 1
            status = ORDER_STATUSES[rng.choice(len(ORDER_STATUSES), p=p.status_mix)]
            orders.append((order_id, customer_id, status, created))
            for _ in range(rng.randint(1, p.max_items + 1)):
                price = round(max(1.0, rng.normal(p.price_mean, p.price_sd)), 2)
                items.append((len(items) + 1, order_id, customer_id, price, created))

    orders = pd.DataFrame(orders, columns=list(ORDER_COLUMNS))
    items = pd.DataFrame(items, columns=["id", "order_id", "customer_id", "sale_price", "created_at"])
    logger.debug("Simulated %d orders and %d items for %d customers", len(orders), len(items), p.n_customers)
    return Snapshot.from_frames(orders, items)
