"""
Kakeibo job runner

Entry point for scheduled jobs (cron, Cloud Scheduler) and quick manual
checks. Every command builds the components from the environment once,
runs one flow and prints a short summary.

Usage:
    python app/main.py ingest [--since 2026-02-01]
    python app/main.py alerts
    python app/main.py fixed
    python app/main.py report [--monthly]
    python app/main.py advise
    python app/main.py record "ランチ 1200"
    python app/main.py dashboard [--year 2026 --month 2]
    python app/main.py yearly [--year 2026]
    python app/main.py check-config
"""

import argparse
import asyncio
import sys
from datetime import datetime

from kakeibo.config import get_settings, validate_all_settings
from kakeibo.models.results import OperationStatus
from kakeibo.orchestrator import AppComponents, create_app_components, local_now


def _print_unconfigured():
    print("❌ Ledger store is not configured.")
    print("   Set GOOGLE_SHEETS_CREDENTIALS_PATH and GOOGLE_SHEETS_SPREADSHEET_ID.")


async def run_ingest(components: AppComponents, args) -> int:
    since = datetime.strptime(args.since, "%Y-%m-%d") if args.since else None
    report = await components.ingestion.run_batch(since=since)
    if report.status == OperationStatus.UNCONFIGURED:
        _print_unconfigured()
        return 1

    print("📥 Ingestion finished")
    print(f"   Fetched:    {report.fetched}")
    print(f"   Written:    {report.written}")
    print(f"   Duplicates: {report.skipped}")
    print(f"   Unparsed:   {report.unparsed}")
    print(f"   Failed:     {report.failed}")
    return 0 if report.status == OperationStatus.OK else 1


async def run_alerts(components: AppComponents, args) -> int:
    alert = await components.alerts.check()
    print(f"🔔 Alert sent: {alert.value}" if alert else "🔕 No alert")
    return 0


async def run_fixed(components: AppComponents, args) -> int:
    recorded = await components.fixed_expenses.record_due()
    if not recorded:
        print("Nothing due today")
    for entry in recorded:
        print(f"✅ {entry.memo}: {entry.amount:,}円")
    return 0


async def run_report(components: AppComponents, args) -> int:
    delivered = await components.advisor.report(weekly=not args.monthly)
    print("📨 Report delivered" if delivered else "⚠️  Report not delivered")
    return 0 if delivered else 1


async def run_advise(components: AppComponents, args) -> int:
    message = await components.advisor.advise()
    if message is None:
        _print_unconfigured()
        return 1
    print(message)
    return 0


async def run_record(components: AppComponents, args) -> int:
    print(await components.ledger.record_chat_message(args.text))
    return 0


async def run_dashboard(components: AppComponents, args) -> int:
    today = local_now(get_settings().ledger.timezone).date()
    result = await components.reports.dashboard(args.year or today.year, args.month or today.month)
    if result.status == OperationStatus.UNCONFIGURED:
        _print_unconfigured()
        return 1

    snapshot = result.data
    print("=" * 60)
    print(f"📊 {snapshot.month_label}")
    print("=" * 60)
    print(f"繰越:   {snapshot.carry_over:>12,}円")
    print(f"収入:   {snapshot.total_income:>12,}円")
    print(f"支出:   {snapshot.total_expense:>12,}円")
    if snapshot.budget is not None:
        print(f"予算:   {snapshot.budget:>12,}円 ({snapshot.budget_used_percent}%)")
    print("\nカテゴリ別:")
    for row in snapshot.category_totals:
        print(f"  {row.category:<12} {row.amount:>10,}円")
    print("\n口座残高:")
    for account, balance in snapshot.account_balances.items():
        print(f"  {account:<12} {balance:>10,}円")
    return 0


async def run_yearly(components: AppComponents, args) -> int:
    year = args.year or local_now(get_settings().ledger.timezone).year
    result = await components.reports.yearly(year)
    if result.status == OperationStatus.UNCONFIGURED:
        _print_unconfigured()
        return 1

    rollup = result.data
    print(f"📈 {rollup.year}年 (繰越 {rollup.carry_over:,}円)")
    for row in rollup.months:
        print(
            f"  {row.month:>2}月  収入 {row.income:>10,}  支出 {row.expense:>10,}"
            f"  累計 {row.cumulative_savings:>12,}"
        )
    return 0


def run_check_config() -> int:
    results = validate_all_settings()
    ok = True
    for name in ("google_sheets", "gemini", "line", "gmail", "ledger"):
        if results.get(name):
            print(f"✅ {name}")
        else:
            ok = False
            print(f"❌ {name}: {results.get(f'{name}_error', 'invalid')}")
    return 0 if ok else 1


COMMANDS = {
    "ingest": run_ingest,
    "alerts": run_alerts,
    "fixed": run_fixed,
    "report": run_report,
    "advise": run_advise,
    "record": run_record,
    "dashboard": run_dashboard,
    "yearly": run_yearly,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Kakeibo household ledger jobs")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Ingest card notifications from the mailbox")
    ingest.add_argument("--since", help="Search from this day (YYYY-MM-DD)")

    sub.add_parser("alerts", help="Check the monthly budget and send alerts")
    sub.add_parser("fixed", help="Record fixed expenses due today")

    report = sub.add_parser("report", help="Push the weekly analysis report")
    report.add_argument("--monthly", action="store_true", help="Monthly instead of weekly")

    sub.add_parser("advise", help="Generate and push the dashboard advice")

    record = sub.add_parser("record", help='Record "<memo> <amount>"')
    record.add_argument("text")

    dashboard = sub.add_parser("dashboard", help="Print the monthly snapshot")
    dashboard.add_argument("--year", type=int)
    dashboard.add_argument("--month", type=int, choices=range(1, 13))

    yearly = sub.add_parser("yearly", help="Print the yearly rollup")
    yearly.add_argument("--year", type=int)

    sub.add_parser("check-config", help="Validate environment configuration")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "check-config":
        return run_check_config()

    components = create_app_components()
    return asyncio.run(COMMANDS[args.command](components, args))


if __name__ == "__main__":
    sys.exit(main())
