from typing import Optional

from sqlalchemy.orm import Session

from donation_ledger.config import get_max_page_size
from donation_ledger.errors import ValidationError
from donation_ledger.models import Donation, PaymentStatus


def effective_page_size(page_size: int) -> int:
    return min(page_size, get_max_page_size())


def list_donations(
    db: Session,
    account_id: str,
    page: int = 1,
    page_size: int = 10,
    status: Optional[str] = None,
) -> tuple[list[Donation], int]:
    """One page of an account's donations, newest first, plus the match count.

    Always scoped to ``account_id``; there is no cross-account listing.
    """
    if page < 1:
        raise ValidationError("Page must be at least 1", field="page")
    if page_size < 1:
        raise ValidationError("Page size must be at least 1", field="pageSize")
    if status == "":
        status = None
    if status is not None:
        try:
            status = PaymentStatus(status).value
        except ValueError:
            raise ValidationError("Unknown payment status", field="status")

    page_size = effective_page_size(page_size)

    query = db.query(Donation).filter(Donation.account_id == account_id)
    if status is not None:
        query = query.filter(Donation.payment_status == status)

    total = query.count()
    offset = (page - 1) * page_size
    if offset >= total:
        # past the last page; also keeps huge offsets away from the driver
        return [], total

    items = (
        query.order_by(Donation.created_at.desc(), Donation.id.desc())
        .offset(offset)
        .limit(page_size)
        .all()
    )
    return items, total
