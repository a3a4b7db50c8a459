"""
validation.py — Data-quality profile of an orders snapshot
----------------------------------------------------------
- Record counts, distinct customers and date ranges per table
- Nulls in the fields the retention report depends on
- Duplicate ids, orphaned order items, negative prices
- Order status distribution and sale price statistics

Problems are reported, never fixed: rows with a null status or timestamp
simply never qualify for the retention report.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, List
import pandas as pd

from .snapshot import Snapshot

logger = logging.getLogger(__name__)

CRITICAL_FIELDS = {
    "orders": ("customer_id", "status", "created_at"),
    "order_items": ("order_id", "sale_price", "created_at"),
}
ID_FIELDS = {"orders": "order_id", "order_items": "id"}

@dataclass
class TableProfile:
    name:str
    total_records:int
    unique_customers:int
    earliest:pd.Timestamp
    latest:pd.Timestamp
    nulls:Dict[str,int]=field(default_factory=dict)
    duplicate_ids:int=0

    @property
    def days_span(self)->int:
        if pd.isna(self.earliest) or pd.isna(self.latest):
            return 0
        return (self.latest.normalize() - self.earliest.normalize()).days

@dataclass
class QualityReport:
    tables:Dict[str,TableProfile]
    orphaned_items:int
    status_distribution:pd.DataFrame
    price_stats:Dict[str,float]
    negative_prices:int

    def issues(self)->List[str]:
        found = []
        for t in self.tables.values():
            for col, n in t.nulls.items():
                if n:
                    found.append(f"{t.name}.{col}: {n:,} null values ({100.0 * n / t.total_records:.2f}%)")
            if t.duplicate_ids:
                found.append(f"{t.name}: {t.duplicate_ids:,} duplicate ids")
        if self.orphaned_items:
            found.append(f"order_items: {self.orphaned_items:,} items reference a missing order")
        if self.negative_prices:
            found.append(f"order_items: {self.negative_prices:,} negative sale prices")
        return found

def _profile_table(name:str, df:pd.DataFrame)->TableProfile:
    created = df["created_at"] if "created_at" in df.columns else pd.Series(dtype="datetime64[ns]")
    id_col = ID_FIELDS[name]
    duplicates = int(len(df) - df[id_col].nunique(dropna=False)) if id_col in df.columns else 0
    return TableProfile(
        name=name,
        total_records=len(df),
        unique_customers=int(df["customer_id"].nunique()) if "customer_id" in df.columns else 0,
        earliest=created.min(),
        latest=created.max(),
        nulls={c: int(df[c].isna().sum()) for c in CRITICAL_FIELDS[name] if c in df.columns},
        duplicate_ids=duplicates,
    )

def status_distribution(orders:pd.DataFrame)->pd.DataFrame:
    counts = orders["status"].value_counts(dropna=False).rename("order_count")
    dist = counts.to_frame()
    dist["percentage"] = (100.0 * dist["order_count"] / dist["order_count"].sum()).round(2)
    dist.index.name = "status"
    return dist

def price_stats(items:pd.DataFrame)->Dict[str,float]:
    prices = items["sale_price"].dropna()
    if prices.empty:
        return {}
    return {
        "min": float(prices.min()),
        "max": float(prices.max()),
        "mean": round(float(prices.mean()), 2),
        "median": round(float(prices.median()), 2),
        "p99": round(float(prices.quantile(0.99)), 2),
    }

def profile_snapshot(snapshot:Snapshot)->QualityReport:
    orders, items = snapshot.orders, snapshot.items
    known_orders = set(orders["order_id"].dropna())
    orphaned = int((~items["order_id"].isin(known_orders)).sum())
    report = QualityReport(
        tables={"orders": _profile_table("orders", orders), "order_items": _profile_table("order_items", items)},
        orphaned_items=orphaned,
        status_distribution=status_distribution(orders),
        price_stats=price_stats(items),
        negative_prices=int((items["sale_price"] < 0).sum()),
    )
    for t in report.tables.values():
        logger.info("%s: %s records, %s customers, %s to %s (%d days)", t.name, f"{t.total_records:,}",
                    f"{t.unique_customers:,}", t.earliest, t.latest, t.days_span)
    return report
