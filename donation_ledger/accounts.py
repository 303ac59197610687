"""Account directory: the read-only lookup the ledger depends on, plus the
registration path used by the identity side of the system."""

import logging
import re
from typing import Optional, Protocol

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from donation_ledger.errors import ConflictError, ValidationError
from donation_ledger.models import Account

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
USERNAME_MIN_LENGTH = 3


class AccountLookup(Protocol):
    def get_by_id(self, account_id: str) -> Optional[Account]: ...

    def get_by_username(self, username: str) -> Optional[Account]: ...


def normalize_email(value: str, field: str = "email") -> str:
    try:
        return validate_email(value, check_deliverability=False).normalized
    except EmailNotValidError:
        raise ValidationError("Invalid email address", field=field)


class SqlAccountDirectory:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, account_id: str) -> Optional[Account]:
        return self.db.get(Account, account_id)

    def get_by_username(self, username: str) -> Optional[Account]:
        return self.db.query(Account).filter_by(username=username).first()

    def register(
        self,
        username: str,
        email: str,
        name: Optional[str] = None,
        image: Optional[str] = None,
        bio: Optional[str] = None,
        donation_goal: Optional[float] = None,
    ) -> Account:
        """Create an account; fails without writing on bad input or duplicates."""
        if not username or len(username) < USERNAME_MIN_LENGTH:
            raise ValidationError(
                f"Username must be at least {USERNAME_MIN_LENGTH} characters", field="username",
            )
        if not USERNAME_PATTERN.match(username):
            raise ValidationError(
                "Username may only contain letters, digits and underscore", field="username",
            )
        email = normalize_email(email or "")
        if donation_goal is not None and not donation_goal > 0:
            raise ValidationError("Donation goal must be greater than 0", field="donationGoal")

        existing = (
            self.db.query(Account)
            .filter(or_(Account.username == username, Account.email == email))
            .first()
        )
        if existing:
            if existing.username == username:
                raise ConflictError("username", username)
            raise ConflictError("email", email)

        account = Account(
            username=username,
            email=email,
            name=name,
            image=image,
            bio=bio,
            donation_goal=donation_goal,
        )
        self.db.add(account)
        try:
            self.db.flush()
        except IntegrityError:
            # lost a race with a concurrent registration
            self.db.rollback()
            if self.get_by_username(username):
                raise ConflictError("username", username)
            raise ConflictError("email", email)
        logger.info("Account registered", extra={"account_id": account.id})
        return account
