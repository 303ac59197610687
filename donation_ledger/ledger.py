"""Donation lifecycle: creation of pending records and the
pending -> confirmed / pending -> failed transition."""

import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from donation_ledger.accounts import AccountLookup, normalize_email
from donation_ledger.errors import (
    InvalidStateTransitionError, NotFoundError, ValidationError,
)
from donation_ledger.models import (
    Account, Donation, PaymentMethod, PaymentStatus, TERMINAL_STATUSES, utcnow,
)

logger = logging.getLogger(__name__)

# NUMERIC(12, 2) on donations.amount
AMOUNT_QUANTUM = Decimal("0.01")
MAX_AMOUNT = Decimal("10000000000")


@dataclass
class DonationRequest:
    amount: float
    donor_name: str
    payment_method: str
    account_id: str
    donor_email: Optional[str] = None
    message: Optional[str] = None
    idempotency_key: Optional[str] = None


@dataclass
class CreatedDonation:
    donation: Donation
    recipient_name: str
    replayed: bool = False


def _validate(request: DonationRequest) -> DonationRequest:
    amount = request.amount
    if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)):
        raise ValidationError("Amount must be a number", field="amount")
    if isinstance(amount, float) and not math.isfinite(amount):
        raise ValidationError("Amount must be a finite number", field="amount")
    exact = Decimal(str(amount))
    if not exact.is_finite() or exact <= 0:
        raise ValidationError("Amount must be greater than 0", field="amount")
    if exact >= MAX_AMOUNT:
        raise ValidationError(f"Amount must be less than {MAX_AMOUNT}", field="amount")
    if exact != exact.quantize(AMOUNT_QUANTUM):
        raise ValidationError("Amount cannot have more than 2 decimal places", field="amount")
    amount = float(exact)

    donor_name = (request.donor_name or "").strip()
    if not donor_name:
        raise ValidationError("Donor name is required", field="donorName")

    donor_email = request.donor_email
    if donor_email is not None and donor_email != "":
        donor_email = normalize_email(donor_email, field="donorEmail")
    else:
        donor_email = None

    try:
        method = PaymentMethod(request.payment_method).value
    except ValueError:
        allowed = ", ".join(m.value for m in PaymentMethod)
        raise ValidationError(f"Payment method must be one of: {allowed}", field="paymentMethod")

    if not request.account_id:
        raise ValidationError("Account id is required", field="accountId")

    return DonationRequest(
        amount=amount,
        donor_name=donor_name,
        payment_method=method,
        account_id=request.account_id,
        donor_email=donor_email,
        message=request.message or None,
        idempotency_key=request.idempotency_key or None,
    )


class LifecycleController:
    def __init__(self, db: Session, accounts: AccountLookup):
        self.db = db
        self.accounts = accounts

    def _find_by_idempotency_key(self, account_id: str, key: str) -> Optional[Donation]:
        return (
            self.db.query(Donation)
            .filter_by(account_id=account_id, idempotency_key=key)
            .first()
        )

    def create_donation(self, request: DonationRequest) -> CreatedDonation:
        """Validate and persist a new pending donation.

        The account check and the insert share one transaction; the foreign
        key rejects the insert if the account vanished in between.
        """
        request = _validate(request)

        account = self.accounts.get_by_id(request.account_id)
        if account is None:
            raise NotFoundError("Account", request.account_id)

        if request.idempotency_key:
            existing = self._find_by_idempotency_key(account.id, request.idempotency_key)
            if existing:
                return CreatedDonation(existing, account.display_name, replayed=True)

        now = utcnow()
        donation = Donation(
            amount=request.amount,
            donor_name=request.donor_name,
            donor_email=request.donor_email,
            message=request.message,
            payment_method=request.payment_method,
            payment_status=PaymentStatus.PENDING.value,
            transaction_id=None,
            account_id=account.id,
            idempotency_key=request.idempotency_key,
            created_at=now,
            updated_at=now,
        )
        self.db.add(donation)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            if request.idempotency_key:
                existing = self._find_by_idempotency_key(request.account_id, request.idempotency_key)
                if existing:
                    return CreatedDonation(existing, existing.account.display_name, replayed=True)
            if self.db.get(Account, request.account_id) is None:
                raise NotFoundError("Account", request.account_id)
            raise

        logger.info(
            f"Donation created: {donation.amount} via {donation.payment_method}",
            extra={"donation_id": donation.id, "account_id": account.id},
        )
        return CreatedDonation(donation, account.display_name)

    def report_payment_outcome(
        self,
        donation_id: str,
        outcome: str,
        transaction_id: Optional[str] = None,
    ) -> Donation:
        """Move a pending donation to a terminal status.

        Compare-and-swap on payment_status: of two concurrent signals exactly
        one updates the row, the other sees zero rows and is rejected.
        """
        try:
            target = PaymentStatus(outcome)
        except ValueError:
            raise ValidationError("Outcome must be 'confirmed' or 'failed'", field="outcome")
        if target not in TERMINAL_STATUSES:
            raise ValidationError("Outcome must be 'confirmed' or 'failed'", field="outcome")

        transaction_id = (transaction_id or "").strip() or None
        if target is PaymentStatus.CONFIRMED and not transaction_id:
            raise ValidationError(
                "A transaction id is required to confirm a payment", field="transactionId",
            )

        result = self.db.execute(
            update(Donation)
            .where(
                Donation.id == donation_id,
                Donation.payment_status == PaymentStatus.PENDING.value,
            )
            .values(
                payment_status=target.value,
                transaction_id=transaction_id,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

        donation = self.db.get(Donation, donation_id)
        if donation is None:
            raise NotFoundError("Donation", donation_id)
        self.db.refresh(donation)

        if result.rowcount != 1:
            logger.warning(
                f"Rejected transition to {target.value} from {donation.payment_status}",
                extra={"donation_id": donation_id},
            )
            raise InvalidStateTransitionError(donation_id, donation.payment_status, target.value)

        logger.info(
            f"Donation {target.value}",
            extra={"donation_id": donation_id, "account_id": donation.account_id},
        )
        return donation
