"""
Plan catalogue and per-user summary quota.

The billing provider is the source of truth for subscriptions; this service
keeps the local ``user_credits`` view that gates job submission, and applies
the provider's signed webhook events to it.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..database.models import UserCredits, PlanType
from ..database.connection import get_database_session
from ..database.exceptions import classify_database_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Plan:
    """A subscription plan offered to users."""
    id: str
    name: str
    description: str
    price: float
    summaries_limit: int
    features: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


PLANS: Dict[str, Plan] = {
    PlanType.FREE.value: Plan(
        id='free',
        name='Free',
        description='Perfect for trying out the service',
        price=0,
        summaries_limit=3,
        features=['3 video summaries per month', 'Basic summary quality', 'Email support'],
    ),
    PlanType.PRO.value: Plan(
        id='pro',
        name='Pro',
        description='Best for content creators',
        price=9.99,
        summaries_limit=20,
        features=[
            '20 video summaries per month', 'Enhanced summary quality',
            'Priority support', 'Custom summary formats',
        ],
    ),
    PlanType.ENTERPRISE.value: Plan(
        id='enterprise',
        name='Enterprise',
        description='For teams and businesses',
        price=29.99,
        summaries_limit=50,
        features=[
            '50 video summaries per month', 'Premium summary quality',
            '24/7 priority support', 'Custom summary formats',
            'API access', 'Team management',
        ],
    ),
}

CHECKOUT_COMPLETED = 'checkout.completed'
SUBSCRIPTION_UPDATED = 'subscription.updated'
SUBSCRIPTION_DELETED = 'subscription.deleted'


def get_plan_summaries_limit(plan_id: str) -> int:
    plan = PLANS.get(plan_id)
    return plan.summaries_limit if plan else 0


class CreditsServiceError(Exception):
    """Custom exception for credits service operations."""
    pass


class QuotaExceededError(CreditsServiceError):
    """The user has no summaries left in the current period."""

    def __init__(self, user_id: str, plan: Optional[str] = None):
        super().__init__(f"No summaries left on the {plan or 'current'} plan. Upgrade to continue.")
        self.user_id = user_id
        self.plan = plan


class InvalidSignatureError(CreditsServiceError):
    """A billing webhook body did not match its signature."""
    pass


class BillingEventError(CreditsServiceError):
    """A billing webhook event is malformed."""
    pass


def verify_signature(body: bytes, signature: Optional[str], secret: Optional[str]) -> None:
    """
    Verify a hex HMAC-SHA256 signature of a raw webhook body.

    Raises:
        InvalidSignatureError: If no secret is configured, the signature is
            missing, or it does not match
    """
    if not secret:
        raise InvalidSignatureError("Billing webhook secret is not configured")
    if not signature:
        raise InvalidSignatureError("Missing billing signature")

    expected = hmac.new(secret.encode('utf-8'), body, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected, signature.strip().lower()):
        raise InvalidSignatureError("Billing signature verification failed")


class CreditsService:
    """Reads and updates the local plan and quota view per user."""

    def __init__(self):
        self._logger = logging.getLogger(f"{__name__}.CreditsService")

    def _find(self, session: Session, user_id: str) -> Optional[UserCredits]:
        return session.execute(
            select(UserCredits).where(UserCredits.user_id == user_id)
        ).scalar_one_or_none()

    def get_or_create(self, user_id: str) -> UserCredits:
        """Get a user's credits, creating a free plan record on first access."""
        try:
            with get_database_session() as session:
                credits = self._find(session, user_id)
                if credits is None:
                    credits = UserCredits(
                        user_id=user_id,
                        plan=PlanType.FREE,
                        summaries_left=get_plan_summaries_limit(PlanType.FREE.value),
                        subscription_status='active',
                    )
                    session.add(credits)
                    session.flush()
                    self._logger.info(f"Created free plan credits for user {user_id}")
                return credits
        except IntegrityError:
            # Concurrent first access created the record first
            with get_database_session() as session:
                return self._find(session, user_id)
        except SQLAlchemyError as e:
            raise classify_database_error(e, 'get_or_create') from e

    def get_plan(self, user_id: str) -> PlanType:
        return self.get_or_create(user_id).plan

    def consume_credit(self, user_id: str) -> int:
        """
        Atomically take one summary from the user's quota.

        Returns:
            Summaries left after consumption

        Raises:
            QuotaExceededError: If nothing is left
        """
        credits = self.get_or_create(user_id)
        try:
            with get_database_session() as session:
                result = session.execute(
                    update(UserCredits)
                    .where(UserCredits.user_id == user_id, UserCredits.summaries_left > 0)
                    .values(summaries_left=UserCredits.summaries_left - 1)
                    .execution_options(synchronize_session=False)
                )
                consumed = result.rowcount == 1
                remaining = self._find(session, user_id).summaries_left if consumed else 0
        except SQLAlchemyError as e:
            raise classify_database_error(e, 'consume_credit') from e

        if not consumed:
            self._logger.info(f"User {user_id} has no summaries left on plan {credits.plan.value}")
            raise QuotaExceededError(user_id, credits.plan.value)

        self._logger.debug(f"User {user_id} consumed a summary, {remaining} left")
        return remaining

    def refund_credit(self, user_id: str) -> None:
        """Return a summary taken for a job that could not be created."""
        try:
            with get_database_session() as session:
                session.execute(
                    update(UserCredits)
                    .where(UserCredits.user_id == user_id)
                    .values(summaries_left=UserCredits.summaries_left + 1)
                    .execution_options(synchronize_session=False)
                )
        except SQLAlchemyError as e:
            raise classify_database_error(e, 'refund_credit') from e
        self._logger.info(f"Refunded one summary to user {user_id}")

    def update_credits(self, user_id: str, **changes) -> UserCredits:
        """Upsert a user's credits record with the given column values."""
        try:
            with get_database_session() as session:
                credits = self._find(session, user_id)
                if credits is None:
                    credits = UserCredits(user_id=user_id)
                    session.add(credits)
                for key, value in changes.items():
                    setattr(credits, key, value)
                session.flush()
                return credits
        except SQLAlchemyError as e:
            raise classify_database_error(e, 'update_credits') from e

    def apply_billing_event(self, event: Dict[str, Any]) -> bool:
        """
        Apply a verified billing event.

        ``checkout.completed`` moves the user to the purchased plan with a
        full quota. ``subscription.updated`` and ``subscription.deleted``
        record the new subscription status and reset the user to the free
        plan.

        Returns:
            True if the event changed a user's credits, False if ignored

        Raises:
            BillingEventError: If the event lacks required fields
        """
        event_type = event.get('type')
        data = event.get('data') or {}
        if not isinstance(data, dict):
            raise BillingEventError(f"Billing event {event_type} data must be an object")
        user_id = data.get('user_id')

        if event_type not in (CHECKOUT_COMPLETED, SUBSCRIPTION_UPDATED, SUBSCRIPTION_DELETED):
            self._logger.info(f"Ignoring billing event {event_type}")
            return False
        if not user_id or not isinstance(user_id, str):
            raise BillingEventError(f"Billing event {event_type} has no user_id")

        if event_type == CHECKOUT_COMPLETED:
            plan_id = data.get('plan') or PlanType.PRO.value
            if not isinstance(plan_id, str) or plan_id not in PLANS:
                raise BillingEventError(f"Unknown plan: {plan_id}")
            self.update_credits(
                user_id,
                plan=PlanType(plan_id),
                summaries_left=get_plan_summaries_limit(plan_id),
                subscription_status='active',
                billing_customer_id=data.get('customer_id'),
                subscription_id=data.get('subscription_id'),
            )
        else:
            self.update_credits(
                user_id,
                plan=PlanType.FREE,
                summaries_left=get_plan_summaries_limit(PlanType.FREE.value),
                subscription_status=data.get('status') or 'canceled',
                subscription_id=data.get('subscription_id'),
            )

        self._logger.info(f"Applied billing event {event_type} for user {user_id}")
        return True
