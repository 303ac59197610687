from datetime import datetime, timezone
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from pydantic.functional_serializers import PlainSerializer


def serialize_utc(value: datetime) -> str:
    """Stored timestamps are naive UTC; emit them with an explicit offset."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.isoformat()


UtcDateTime = Annotated[
    datetime,
    PlainSerializer(serialize_utc, return_type=str, when_used="json"),
]


class CamelModel(BaseModel):
    # JSON field names are part of the external contract (donorName, paymentStatus, ...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class DonationCreateRequest(CamelModel):
    amount: float
    donor_name: str
    donor_email: Optional[str] = None
    message: Optional[str] = None
    payment_method: str
    account_id: str
    idempotency_key: Optional[str] = None


class DonationResponse(CamelModel):
    id: str
    amount: float
    donor_name: str
    donor_email: Optional[str] = None
    message: Optional[str] = None
    payment_method: str
    payment_status: str
    transaction_id: Optional[str] = None
    account_id: str
    created_at: UtcDateTime
    updated_at: UtcDateTime


class CreatedDonationResponse(DonationResponse):
    recipient_name: str


class Pagination(CamelModel):
    page: int
    page_size: int
    total: int
    total_pages: int


class DonationPageResponse(CamelModel):
    items: list[DonationResponse]
    pagination: Pagination


class CreatorStatsResponse(CamelModel):
    lifetime_total: float
    distinct_donor_count: int
    pending_count: int
    current_period_total: float
    goal_progress_percent: Optional[float] = None


class PublicProfileResponse(CamelModel):
    id: str
    username: str
    name: Optional[str] = None
    image: Optional[str] = None
    bio: Optional[str] = None
    donation_goal: Optional[float] = None
    total_donations: float
    total_donors: int
    goal_progress_percent: Optional[float] = None


class PaymentOutcomeRequest(CamelModel):
    donation_id: str
    outcome: str
    transaction_id: Optional[str] = None
