"""
cli.py — Cohort retention report from the command line
------------------------------------------------------
Run examples
- cohort-retention --preview
- cohort-retention --orders orders.csv --items order_items.csv --validate --preview
- cohort-retention --all-cohorts --export retention_report.csv retention_matrix.csv
"""
from __future__ import annotations
import argparse
import logging
import sys
from dataclasses import replace

from .cohort_analysis import build_report, retention_matrix, summarize_cohorts
from .config import RetentionParams
from .errors import CohortRetentionError
from .snapshot import SimParams, load_snapshot, simulate_snapshot
from .validation import profile_snapshot

logger = logging.getLogger(__name__)

def _params(args)->RetentionParams:
    p = RetentionParams()
    overrides = {k: v for k, v in {
        "start": args.start,
        "end": args.end,
        "statuses": tuple(args.statuses) if args.statuses is not None else None,
        "max_months": args.max_months,
        "cohort_start": args.cohort_start,
        "cohort_end": args.cohort_end,
    }.items() if v is not None}
    if args.all_cohorts:
        overrides.update(cohort_start=None, cohort_end=None)
    return replace(p, **overrides)

def _run(args)->None:
    p = _params(args).validate()
    if args.orders:
        snapshot = load_snapshot(args.orders, args.items)
    else:
        logger.info("No snapshot given, simulating %d customers (seed=%d)", args.customers, args.seed)
        snapshot = simulate_snapshot(SimParams(n_customers=args.customers, seed=args.seed))

    if args.validate:
        for issue in profile_snapshot(snapshot).issues():
            logger.warning("Data quality: %s", issue)

    report = build_report(snapshot, p)
    matrix = retention_matrix(report)

    if args.preview:
        print("Cohort retention report (first 15 rows):")
        print(report.head(15).to_string(index=False))
        print("\nRetention matrix (% retained by months since first purchase):")
        print(matrix)
        print("\nCohort summary:")
        print(summarize_cohorts(report).to_string(index=False))

    if args.export:
        report.to_csv(args.export[0], index=False, date_format="%Y-%m-%d")
        logger.info("Wrote %d report rows to %s", len(report), args.export[0])
        if len(args.export) >= 2:
            matrix.to_csv(args.export[1], index=True, date_format="%Y-%m-%d")
            logger.info("Wrote retention matrix to %s", args.export[1])

def main(argv=None)->int:
    ap = argparse.ArgumentParser(prog="cohort-retention", description="Monthly cohort retention and LTV report")
    ap.add_argument("--orders", help="CSV of orders (order_id, user_id/customer_id, status, created_at)")
    ap.add_argument("--items", help="CSV of order items (id, order_id, user_id/customer_id, sale_price, created_at)")
    ap.add_argument("--customers", type=int, default=SimParams.n_customers, help="Customers to simulate without a snapshot")
    ap.add_argument("--seed", type=int, default=SimParams.seed)
    ap.add_argument("--start", help="Analysis window start, inclusive (default 2019-01-01)")
    ap.add_argument("--end", help="Analysis window end, exclusive (default 2025-01-01)")
    ap.add_argument("--statuses", nargs="+", help="Qualifying order statuses (default Complete Shipped)")
    ap.add_argument("--max-months", type=int, help="Months after first purchase to track (default 12)")
    ap.add_argument("--cohort-start", help="First cohort month in the report (default 2023-01-01)")
    ap.add_argument("--cohort-end", help="Cohort months before this date are reported (default 2024-01-01)")
    ap.add_argument("--all-cohorts", action="store_true", help="Report every cohort in the window")
    ap.add_argument("--validate", action="store_true", help="Log data-quality issues in the snapshot")
    ap.add_argument("--preview", action="store_true", help="Print the report, retention matrix and summary")
    ap.add_argument("--export", nargs="+", help="Export report and retention matrix CSVs (provide 1 or 2 paths).")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args(argv)
    if bool(args.orders) != bool(args.items):
        ap.error("--orders and --items must be given together")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(message)s",
        datefmt="%H:%M:%S",
    )
    try:
        _run(args)
    except CohortRetentionError as exc:
        logger.error("%s", exc)
        return 2
    return 0

if __name__ == "__main__":
    sys.exit(main())
