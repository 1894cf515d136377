"""
Subscription maintenance for the gym
Runs the expiry sweep on demand; scheduling is left to the caller (cron, ops)
"""
from datetime import date, datetime
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import gym_today, utc_now
from app.core.conversions import as_date
from app.core.logging_config import get_logger
from app.crud.subscriptionsCrud import (
    count_expirable_subscriptions,
    expire_old_subscriptions,
    get_expiring_subscriptions,
)

logger = get_logger("services.subscription_maintenance")


class SubscriptionMaintenanceService:
    """Service wrapping the periodic subscription jobs"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def run_expiry_sweep(
        self,
        as_of: Optional[date | datetime] = None,
        dry_run: bool = False
    ) -> Dict[str, Any]:
        """
        Expire ACTIVE subscriptions that ended before `as_of`

        Args:
            as_of: Reference date, defaults to today in the gym time zone
            dry_run: Only count what would be expired

        Returns:
            Sweep statistics
        """
        day = as_date(as_of) if as_of else gym_today()
        logger.info(f"Starting expiry sweep as of {day} (dry_run={dry_run})")

        if dry_run:
            expired_count = await count_expirable_subscriptions(self.db, day)
        else:
            expired_count = await expire_old_subscriptions(self.db, day)

        result = {
            "run_at": utc_now().isoformat(),
            "as_of": day.isoformat(),
            "dry_run": dry_run,
            "expired_count": expired_count,
        }

        logger.info(f"Expiry sweep finished: {result}")
        return result

    async def get_renewal_report(self, days_ahead: int = 7) -> Dict[str, Any]:
        """Subscriptions ending soon, with their open balances"""
        today = gym_today()
        expiring = await get_expiring_subscriptions(self.db, days_ahead=days_ahead, today=today)

        return {
            "as_of": today.isoformat(),
            "days_ahead": days_ahead,
            "count": len(expiring),
            "with_open_balance": sum(1 for sub in expiring if not sub.is_fully_paid),
            "subscriptions": [
                {
                    "id": sub.id,
                    "client_name": sub.client_name,
                    "plan_name": sub.plan_name,
                    "end_date": sub.end_date.isoformat(),
                    "remaining_balance": sub.remaining_balance,
                }
                for sub in expiring
            ],
        }
