import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from qrgen.credentials import generate_api_key, generate_bearer_token, has_bearer_shape
from qrgen.models import Account, Plan, PlanTier

logger = logging.getLogger(__name__)

# Used when the plan catalogue has no active row for an account's plan.
FALLBACK_PLAN_LIMITS = {
    PlanTier.STARTER: 100,
    PlanTier.PROFESSIONAL: 500,
    PlanTier.BUSINESS: 2000,
    PlanTier.ENTERPRISE: None,
}


DEFAULT_PLANS = [
    {
        "id": PlanTier.STARTER.value,
        "name": "Starter",
        "price_monthly_cents": 900,
        "monthly_conversions": 100,
        "features": [
            "100 QR code conversions/month",
            "Basic QR code designs",
            "PNG download",
            "Standard support",
        ],
    },
    {
        "id": PlanTier.PROFESSIONAL.value,
        "name": "Professional",
        "price_monthly_cents": 2900,
        "monthly_conversions": 500,
        "features": [
            "500 QR code conversions/month",
            "Custom QR code colors",
            "PNG & SVG download",
            "Priority support",
            "Analytics dashboard",
        ],
    },
    {
        "id": PlanTier.BUSINESS.value,
        "name": "Business",
        "price_monthly_cents": 7900,
        "monthly_conversions": 2000,
        "features": [
            "2,000 QR code conversions/month",
            "Advanced customization",
            "All download formats",
            "24/7 dedicated support",
            "Advanced analytics",
            "API access",
        ],
    },
]


def ensure_default_plans(session: Session) -> int:
    """Insert the stock paid plans that are missing from the catalogue. Returns how many were added."""
    added = 0
    for plan in DEFAULT_PLANS:
        if session.get(Plan, plan["id"]) is None:
            session.add(Plan(is_active=True, **plan))
            added += 1
    if added:
        session.flush()
        logger.info("Seeded %d default plans", added)
    return added


def resolve_account(session: Session, api_key: str, bearer_token: str) -> Optional[Account]:
    """
    Find the active account whose stored key and token both equal the given
    values exactly. Returns None for any mismatch; callers must not reveal
    which half was wrong.
    """
    if not has_bearer_shape(bearer_token):
        return None

    stmt = (
        select(Account)
        .where(Account.api_key == api_key)
        .where(Account.bearer_token == bearer_token)
        .where(Account.is_active.is_(True))
        .limit(1)
    )
    account = session.execute(stmt).scalar_one_or_none()
    # Exact comparison guards against case-insensitive collations in the store.
    if account is None or account.api_key != api_key or account.bearer_token != bearer_token:
        return None
    return account


def plan_limit_for(session: Session, plan: str, default_free_limit: int) -> Optional[int]:
    """Monthly conversion cap for `plan`; None means unlimited."""
    row = session.get(Plan, plan)
    if row is not None and row.is_active:
        return row.monthly_conversions

    tier = PlanTier.parse(plan) or PlanTier.FREE
    if tier is PlanTier.FREE:
        return default_free_limit
    return FALLBACK_PLAN_LIMITS[tier]


def list_active_plans(session: Session):
    stmt = (
        select(Plan)
        .where(Plan.is_active.is_(True))
        .order_by(Plan.price_monthly_cents.asc(), Plan.id.asc())
    )
    return list(session.execute(stmt).scalars())


def provision_account(
    session: Session,
    email: str,
    name: Optional[str] = None,
    plan: str = PlanTier.FREE.value,
) -> Account:
    email = email.strip().lower()
    if not email:
        raise ValueError("email is required")
    tier = PlanTier.parse(plan)
    if tier is None:
        raise ValueError(f"unknown plan: {plan}")

    existing = session.execute(select(Account.id).where(Account.email == email)).first()
    if existing:
        raise ValueError("Email already registered.")

    account = Account(
        email=email,
        name=name,
        plan=tier.value,
        conversions_used=0,
        api_key=generate_api_key(email),
        bearer_token=generate_bearer_token(),
        is_active=True,
    )
    session.add(account)
    session.flush()
    logger.info("Provisioned account %s on plan %s", account.id, account.plan)
    return account


def rotate_bearer_token(session: Session, account: Account) -> str:
    account.bearer_token = generate_bearer_token()
    session.flush()
    logger.info("Rotated bearer token for account %s", account.id)
    return account.bearer_token
