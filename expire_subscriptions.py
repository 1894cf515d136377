import argparse
import asyncio
from datetime import date

from app.core.logging_config import setup_logging
from app.db.postgresql import SessionLocal, engine
from app.services.subscription_maintenance import SubscriptionMaintenanceService


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Expire ACTIVE subscriptions whose end date has passed."
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Reference date (YYYY-MM-DD), defaults to today in the gym time zone.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report how many subscriptions would be expired.",
    )
    parser.add_argument(
        "--report-days",
        type=int,
        default=0,
        help="Also list subscriptions ending within this many days.",
    )
    return parser.parse_args()


async def main() -> None:
    args = parse_args()
    setup_logging()

    async with SessionLocal() as db:
        service = SubscriptionMaintenanceService(db)
        stats = await service.run_expiry_sweep(as_of=args.date, dry_run=args.dry_run)

        print("=== Expiry Sweep ===")
        print(f"As of: {stats['as_of']}")
        label = "Would expire" if stats["dry_run"] else "Expired"
        print(f"{label}: {stats['expired_count']}")

        if args.report_days > 0:
            report = await service.get_renewal_report(days_ahead=args.report_days)
            print(f"Ending within {report['days_ahead']} days: {report['count']} "
                  f"({report['with_open_balance']} with open balance)")
            for sub in report["subscriptions"]:
                print(f"  #{sub['id']} {sub['client_name']} - {sub['plan_name']} "
                      f"ends {sub['end_date']} balance {sub['remaining_balance']:.2f}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
