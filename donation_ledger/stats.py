import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import case, distinct, func, literal
from sqlalchemy.orm import Session

from donation_ledger.accounts import AccountLookup, SqlAccountDirectory
from donation_ledger.errors import NotFoundError
from donation_ledger.models import Donation, PaymentStatus, utcnow

logger = logging.getLogger(__name__)


@dataclass
class CreatorStats:
    lifetime_total: float
    distinct_donor_count: int
    pending_count: int
    current_period_total: float
    goal_progress_percent: Optional[float]


@dataclass
class PublicProfile:
    id: str
    username: str
    name: Optional[str]
    image: Optional[str]
    bio: Optional[str]
    donation_goal: Optional[float]
    total_donations: float
    total_donors: int
    goal_progress_percent: Optional[float]


def period_start(now: datetime) -> datetime:
    """First instant of the calendar month containing ``now``."""
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def goal_progress(total: float, goal: Optional[float]) -> Optional[float]:
    if not goal:
        return None
    return min(total / goal * 100, 100.0)


def _aggregate(db: Session, account_id: str, now: datetime):
    # Single statement so each row is read in exactly one status per call.
    confirmed = Donation.payment_status == PaymentStatus.CONFIRMED.value
    in_period = Donation.created_at >= period_start(now)
    return (
        db.query(
            func.coalesce(func.sum(case((confirmed, Donation.amount), else_=literal(0))), 0),
            func.count(distinct(case((confirmed, Donation.donor_name), else_=None))),
            func.coalesce(
                func.sum(case((Donation.payment_status == PaymentStatus.PENDING.value, 1), else_=0)), 0,
            ),
            func.coalesce(
                func.sum(case((confirmed & in_period, Donation.amount), else_=literal(0))), 0,
            ),
        )
        .filter(Donation.account_id == account_id)
        .one()
    )


def compute_creator_stats(
    db: Session,
    account_id: str,
    now: Optional[datetime] = None,
    accounts: Optional[AccountLookup] = None,
) -> CreatorStats:
    accounts = accounts or SqlAccountDirectory(db)
    account = accounts.get_by_id(account_id)
    if account is None:
        raise NotFoundError("Account", account_id)

    total, donors, pending, period_total = _aggregate(db, account_id, now or utcnow())
    total = round(float(total), 2)
    return CreatorStats(
        lifetime_total=total,
        distinct_donor_count=int(donors),
        pending_count=int(pending),
        current_period_total=round(float(period_total), 2),
        goal_progress_percent=goal_progress(total, account.donation_goal),
    )


def get_public_profile(
    db: Session, username: str, accounts: Optional[AccountLookup] = None,
) -> PublicProfile:
    accounts = accounts or SqlAccountDirectory(db)
    account = accounts.get_by_username(username)
    if account is None:
        raise NotFoundError("User", username)

    stats = compute_creator_stats(db, account.id, accounts=accounts)
    return PublicProfile(
        id=account.id,
        username=account.username,
        name=account.name,
        image=account.image,
        bio=account.bio,
        donation_goal=account.donation_goal,
        total_donations=stats.lifetime_total,
        total_donors=stats.distinct_donor_count,
        goal_progress_percent=stats.goal_progress_percent,
    )
