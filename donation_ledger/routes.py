import math
from typing import Optional

from fastapi import APIRouter, Depends, Query

from donation_ledger.accounts import SqlAccountDirectory
from donation_ledger.auth import verify_token
from donation_ledger.config import get_default_page_size
from donation_ledger.database import SessionLocal, session_scope
from donation_ledger.ledger import DonationRequest, LifecycleController
from donation_ledger.queries import effective_page_size, list_donations
from donation_ledger.schemas import (
    CreatedDonationResponse,
    CreatorStatsResponse,
    DonationCreateRequest,
    DonationPageResponse,
    DonationResponse,
    Pagination,
    PublicProfileResponse,
)
from donation_ledger.stats import compute_creator_stats, get_public_profile

router = APIRouter()


@router.post("/donations", status_code=201, response_model=CreatedDonationResponse)
def create_donation_api(request: DonationCreateRequest):
    with session_scope(SessionLocal) as db:
        controller = LifecycleController(db, SqlAccountDirectory(db))
        created = controller.create_donation(DonationRequest(
            amount=request.amount,
            donor_name=request.donor_name,
            donor_email=request.donor_email,
            message=request.message,
            payment_method=request.payment_method,
            account_id=request.account_id,
            idempotency_key=request.idempotency_key,
        ))
        body = DonationResponse.model_validate(created.donation).model_dump()
        return CreatedDonationResponse(**body, recipient_name=created.recipient_name)


@router.get("/me/donations", response_model=DonationPageResponse)
def list_donations_api(
    page: int = Query(1),
    page_size: Optional[int] = Query(None, alias="pageSize"),
    status: Optional[str] = Query(None),
    account_id: str = Depends(verify_token),
):
    if page_size is None:
        page_size = get_default_page_size()

    with session_scope(SessionLocal) as db:
        items, total = list_donations(db, account_id, page=page, page_size=page_size, status=status)
        size = effective_page_size(page_size)
        return DonationPageResponse(
            items=[DonationResponse.model_validate(d) for d in items],
            pagination=Pagination(
                page=page,
                page_size=size,
                total=total,
                total_pages=math.ceil(total / size),
            ),
        )


@router.get("/me/stats", response_model=CreatorStatsResponse)
def creator_stats_api(account_id: str = Depends(verify_token)):
    with session_scope(SessionLocal) as db:
        stats = compute_creator_stats(db, account_id, accounts=SqlAccountDirectory(db))
    return CreatorStatsResponse.model_validate(stats)


@router.get("/users/{username}", response_model=PublicProfileResponse)
def public_profile_api(username: str):
    with session_scope(SessionLocal) as db:
        profile = get_public_profile(db, username, accounts=SqlAccountDirectory(db))
    return PublicProfileResponse.model_validate(profile)
