"""
cohort_analysis.py — Cohort retention & LTV over an orders snapshot
-------------------------------------------------------------------
What this does
- Assigns each customer to the month of their first qualifying order
- Sizes cohorts and their average first-month order value
- Buckets later orders by months since first purchase (first year)
- Computes retention / churn, revenue, cumulative LTV per cohort bucket
- Flags month-over-month retention change and benchmark misses
- Summaries: retention matrix, LTV by cohort, per-cohort drop-off

Stages run in order and each returns a new frame:
qualifying_orders -> assign_cohorts -> size_cohorts -> bucket_activity
-> aggregate_cohort_metrics -> accumulate_ltv -> annotate_retention

Author: You
License: MIT
"""
from __future__ import annotations
import logging
from typing import Optional
import numpy as np
import pandas as pd

from .config import RetentionParams
from .snapshot import Snapshot

logger = logging.getLogger(__name__)

REPORT_COLUMNS = [
    "cohort_month", "initial_customers", "avg_first_order_value",
    "months_since_first", "retention_phase",
    "retained_customers", "retention_rate_pct", "churn_rate_pct",
    "total_orders_in_month", "total_revenue_in_month", "avg_revenue_per_retained_customer",
    "cumulative_revenue", "cumulative_ltv_per_customer",
    "retention_change_from_prior_month", "retention_benchmark",
]

# (first month, last month, label); None leaves the last range open
RETENTION_PHASES = (
    (0, 0, "Acquisition"),
    (1, 1, "Critical Period"),
    (2, 3, "Early Retention"),
    (4, 6, "Mid Retention"),
    (7, None, "Long-term Loyalty"),
)

# months since first -> (threshold pct, label below, label at or above)
BENCHMARKS = {
    1: (30.0, "Critical: below 30% month-1 retention", None),
    3: (20.0, "Warning: below 20% month-3 retention", None),
    6: (15.0, "Warning: below 15% month-6 retention", None),
    12: (10.0, "Poor: below 10% month-12 retention", "Good: 10%+ month-12 retention"),
}

SUMMARY_MONTHS = (1, 3, 6, 12)

def retention_phase(months:int)->str:
    if months < 0:
        raise ValueError(f"months since first purchase must be >= 0, got {months}")
    for lo, hi, label in RETENTION_PHASES:
        if lo <= months and (hi is None or months <= hi):
            return label
    raise ValueError(f"no retention phase covers month {months}")

def retention_benchmark(months:int, retention_rate_pct:Optional[float])->Optional[str]:
    if months < 0:
        raise ValueError(f"months since first purchase must be >= 0, got {months}")
    if months not in BENCHMARKS or retention_rate_pct is None or pd.isna(retention_rate_pct):
        return None
    threshold, below, at_or_above = BENCHMARKS[months]
    return below if retention_rate_pct < threshold else at_or_above

def _month_floor(dt:pd.Series)->pd.Series:
    return pd.Series(pd.to_datetime(dt).values.astype('datetime64[M]').astype('datetime64[ns]'), index=dt.index)

def _months_between(later:pd.Series, earlier:pd.Series)->pd.Series:
    return (later.dt.year - earlier.dt.year) * 12 + (later.dt.month - earlier.dt.month)

def _pct(part:pd.Series, whole:pd.Series)->pd.Series:
    # zero denominators give NaN, never an error
    return (100.0 * part / whole.replace(0, np.nan)).round(2)

def qualifying_orders(snapshot:Snapshot, p:RetentionParams)->pd.DataFrame:
    """Orders with a qualifying status inside [start, end), one row per order with its item revenue."""
    start, end = p.window
    orders = snapshot.orders
    ts = orders["created_at"]
    mask = orders["status"].isin(p.statuses) & (ts >= start) & (ts < end) & orders["customer_id"].notna()
    q = orders.loc[mask, ["order_id", "customer_id", "created_at"]].drop_duplicates("order_id")
    item_revenue = snapshot.items.groupby("order_id")["sale_price"].sum()
    q = q.assign(revenue=q["order_id"].map(item_revenue).fillna(0.0))
    logger.debug("%d of %d orders qualify", len(q), len(orders))
    return q.reset_index(drop=True)

def assign_cohorts(orders:pd.DataFrame)->pd.DataFrame:
    first = orders.groupby("customer_id")["created_at"].min().rename("first_purchase_at").reset_index()
    first["cohort_month"] = _month_floor(first["first_purchase_at"])
    logger.debug("%d customers across %d cohorts", len(first), first["cohort_month"].nunique())
    return first[["customer_id", "cohort_month", "first_purchase_at"]]

def size_cohorts(cohorts:pd.DataFrame, orders:pd.DataFrame)->pd.DataFrame:
    """
    Cohort size and average first-order value per cohort month.

    First-order value is everything a customer bought in their cohort month,
    not only the earliest transaction.
    """
    df = orders.merge(cohorts, on="customer_id")
    in_cohort_month = df[_month_floor(df["created_at"]) == df["cohort_month"]]
    first_month_revenue = in_cohort_month.groupby("customer_id")["revenue"].sum()
    sizes = (
        cohorts.assign(first_month_revenue=cohorts["customer_id"].map(first_month_revenue))
        .groupby("cohort_month")
        .agg(initial_customers=("customer_id", "nunique"), avg_first_order_value=("first_month_revenue", "mean"))
        .reset_index()
    )
    sizes["avg_first_order_value"] = sizes["avg_first_order_value"].round(2)
    return sizes

def bucket_activity(cohorts:pd.DataFrame, orders:pd.DataFrame, max_months:int=12)->pd.DataFrame:
    """One row per (cohort, customer, activity month) within the first max_months."""
    df = orders.merge(cohorts, on="customer_id")
    df = df[df["created_at"] >= df["first_purchase_at"]].copy()
    df["activity_month"] = _month_floor(df["created_at"])
    df["months_since_first"] = _months_between(df["activity_month"], df["cohort_month"])
    df = df[df["months_since_first"] <= max_months]
    activity = (
        df.groupby(["cohort_month", "customer_id", "activity_month", "months_since_first"], as_index=False)
        .agg(orders_in_period=("order_id", "nunique"), revenue_in_period=("revenue", "sum"))
    )
    activity["revenue_in_period"] = activity["revenue_in_period"].round(2)
    logger.debug("%d activity buckets within %d months", len(activity), max_months)
    return activity

def aggregate_cohort_metrics(activity:pd.DataFrame, sizes:pd.DataFrame)->pd.DataFrame:
    metrics = (
        activity.groupby(["cohort_month", "months_since_first"], as_index=False)
        .agg(
            retained_customers=("customer_id", "nunique"),
            total_orders_in_month=("orders_in_period", "sum"),
            total_revenue_in_month=("revenue_in_period", "sum"),
            avg_revenue_per_retained_customer=("revenue_in_period", "mean"),
        )
        .merge(sizes, on="cohort_month", how="left")
    )
    size = metrics["initial_customers"]
    metrics["retention_rate_pct"] = _pct(metrics["retained_customers"], size)
    metrics["churn_rate_pct"] = _pct(size - metrics["retained_customers"], size)
    metrics["total_revenue_in_month"] = metrics["total_revenue_in_month"].round(2)
    metrics["avg_revenue_per_retained_customer"] = metrics["avg_revenue_per_retained_customer"].round(2)
    metrics["retention_phase"] = metrics["months_since_first"].map(retention_phase)
    return metrics

def accumulate_ltv(metrics:pd.DataFrame)->pd.DataFrame:
    """Running revenue per cohort in ascending months_since_first; LTV divides by the initial cohort size."""
    out = metrics.sort_values(["cohort_month", "months_since_first"]).reset_index(drop=True)
    out["cumulative_revenue"] = out.groupby("cohort_month")["total_revenue_in_month"].cumsum().round(2)
    out["cumulative_ltv_per_customer"] = (
        out["cumulative_revenue"] / out["initial_customers"].replace(0, np.nan)
    ).round(2)
    return out

def annotate_retention(metrics:pd.DataFrame)->pd.DataFrame:
    out = metrics.sort_values(["cohort_month", "months_since_first"]).reset_index(drop=True)
    by_cohort = out.groupby("cohort_month")
    prior_rate = by_cohort["retention_rate_pct"].shift()
    prior_month = by_cohort["months_since_first"].shift()
    # a missing bucket means no one from the cohort ordered that month
    prior_rate = prior_rate.where(prior_month == out["months_since_first"] - 1, 0.0)
    change = (out["retention_rate_pct"] - prior_rate).round(2)
    out["retention_change_from_prior_month"] = change.where(out["months_since_first"] > 0)
    out["retention_benchmark"] = [
        retention_benchmark(m, r) for m, r in zip(out["months_since_first"], out["retention_rate_pct"])
    ]
    return out

def _slice_cohorts(report:pd.DataFrame, p:RetentionParams)->pd.DataFrame:
    lo, hi = p.cohort_slice
    mask = pd.Series(True, index=report.index)
    if lo is not None:
        mask &= report["cohort_month"] >= lo
    if hi is not None:
        mask &= report["cohort_month"] < hi
    return report[mask]

def empty_report()->pd.DataFrame:
    return pd.DataFrame(columns=REPORT_COLUMNS)

def build_report(snapshot:Snapshot, p:RetentionParams=RetentionParams())->pd.DataFrame:
    """
    Cohort retention report, newest cohort first then months_since_first ascending.

    Raises ConfigurationError before reading any data if the parameters are invalid.
    """
    p.validate()
    orders = qualifying_orders(snapshot, p)
    if orders.empty:
        logger.info("No qualifying orders between %s and %s", p.start, p.end)
        return empty_report()

    cohorts = assign_cohorts(orders)
    sizes = size_cohorts(cohorts, orders)
    activity = bucket_activity(cohorts, orders, p.max_months)
    metrics = aggregate_cohort_metrics(activity, sizes)
    metrics = accumulate_ltv(metrics)
    metrics = annotate_retention(metrics)

    report = _slice_cohorts(metrics, p)
    report = report.sort_values(["cohort_month", "months_since_first"], ascending=[False, True])
    report = report[REPORT_COLUMNS].reset_index(drop=True)
    logger.info("Cohort report: %d cohorts, %d rows", report["cohort_month"].nunique(), len(report))
    return report

def retention_matrix(report:pd.DataFrame)->pd.DataFrame:
    if report.empty:
        return pd.DataFrame(index=pd.Index([], name="cohort_month"))
    matrix = report.pivot(index="cohort_month", columns="months_since_first", values="retention_rate_pct")
    matrix = matrix.reindex(columns=range(int(report["months_since_first"].max()) + 1)).fillna(0.0)
    matrix.columns.name = "months_since_first"
    return matrix.sort_index()

def ltv_by_cohort(report:pd.DataFrame)->pd.DataFrame:
    last = report.sort_values(["cohort_month", "months_since_first"]).groupby("cohort_month").tail(1)
    ltv = last.set_index("cohort_month")[["initial_customers", "months_since_first", "cumulative_ltv_per_customer"]]
    ltv = ltv.rename(columns={"months_since_first": "observed_months", "cumulative_ltv_per_customer": "ltv"})
    return ltv.sort_index()

def summarize_cohorts(report:pd.DataFrame)->pd.DataFrame:
    """Per cohort: benchmark-month retention, the sharpest drop-off and first-year LTV."""
    rows = []
    for cohort, g in report.groupby("cohort_month", sort=False):
        g = g.set_index("months_since_first").sort_index()
        row = {"cohort_month": cohort, "initial_customers": int(g["initial_customers"].iloc[0])}
        for m in SUMMARY_MONTHS:
            row[f"month_{m}_retention_pct"] = float(g["retention_rate_pct"].get(m, 0.0))
        changes = g["retention_change_from_prior_month"].dropna()
        if changes.empty:
            row["sharpest_drop_month"], row["sharpest_drop_pct"] = None, np.nan
        else:
            row["sharpest_drop_month"], row["sharpest_drop_pct"] = int(changes.idxmin()), float(changes.min())
        row["first_year_ltv"] = float(g["cumulative_ltv_per_customer"].iloc[-1])
        rows.append(row)
    columns = ["cohort_month", "initial_customers"] + [f"month_{m}_retention_pct" for m in SUMMARY_MONTHS] \
        + ["sharpest_drop_month", "sharpest_drop_pct", "first_year_ltv"]
    return pd.DataFrame(rows, columns=columns)
