"""Wallet, coupon redemption and referral endpoints."""

from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ... import schemas, services
from ...auth import Identity, require_user
from ...database import get_session

router = APIRouter(tags=["wallet"])


@router.get("/wallet", response_model=schemas.WalletSummary)
def wallet_summary(user: Identity = Depends(require_user), db: Session = Depends(get_session)):
    return services.WalletService(db).summary(user.user_id)


@router.get("/wallet/transactions", response_model=List[schemas.WalletTransactionOut])
def wallet_transactions(user: Identity = Depends(require_user), db: Session = Depends(get_session)):
    return services.WalletService(db).transactions(user.user_id)


@router.post("/coupons/redeem", response_model=schemas.WalletSummary)
def redeem_coupon(payload: schemas.CouponRedeemRequest, user: Identity = Depends(require_user), db: Session = Depends(get_session)):
    """Redeem a coupon code and return the updated wallet."""
    return services.CouponService(db).redeem(user.user_id, payload.code)


@router.get("/referral", response_model=schemas.ReferralSummary)
def referral_summary(user: Identity = Depends(require_user), db: Session = Depends(get_session)):
    return services.ReferralService(db).summary(user.user_id)
