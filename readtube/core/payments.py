"""
Stripe checkout and webhook handling for minute packages.
"""

import json
from typing import Any, Dict, Optional

import stripe
from sqlalchemy.orm import Session

from readtube.config import config
from readtube.db import crud
from readtube.db.models import User
from readtube.utils.error_handling import (
    InvalidRequestError,
    ServiceNotConfigured,
    UpstreamServiceError,
)
from readtube.utils.logger import logging

SIGNATURE_TOLERANCE_SECONDS = 300


class PaymentGateway:
    """Creates hosted checkout sessions and applies verified webhook events."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        public_url: str = config.PUBLIC_URL,
        package_minutes: int = config.PACKAGE_MINUTES,
        package_price: int = config.PACKAGE_PRICE,
        currency: str = config.PACKAGE_CURRENCY,
        package_name: str = config.PACKAGE_NAME,
    ):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.public_url = public_url.rstrip("/")
        self.package_minutes = package_minutes
        self.package_price = package_price
        self.currency = currency
        self.package_name = package_name

    @property
    def enabled(self) -> bool:
        return bool(self.secret_key)

    def create_checkout_session(self, user: User) -> Dict[str, str]:
        """Open a Stripe Checkout session for one minutes package."""
        if not self.enabled:
            raise ServiceNotConfigured("Payments are not configured on this server.")

        try:
            session = stripe.checkout.Session.create(
                api_key=self.secret_key,
                mode="payment",
                payment_method_types=["card"],
                line_items=[{
                    "price_data": {
                        "currency": self.currency,
                        "product_data": {"name": self.package_name},
                        "unit_amount": self.package_price,
                    },
                    "quantity": 1,
                }],
                success_url=f"{self.public_url}/payment/success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{self.public_url}/payment/cancelled",
                customer_email=user.email or None,
                metadata={
                    "userId": user.id,
                    "minutesPurchased": str(self.package_minutes),
                },
            )
        except stripe.StripeError as e:
            logging.error(f"Stripe checkout failed for user {user.id}: {e}")
            raise UpstreamServiceError("Could not start the payment. Please try again.")

        logging.info(f"Checkout session {session.id} created for user {user.id}")
        return {"sessionId": session.id, "url": session.url}

    def parse_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Verify the ``Stripe-Signature`` header and decode the event."""
        if not self.webhook_secret:
            raise ServiceNotConfigured("Payment webhooks are not configured on this server.")
        if not signature:
            raise InvalidRequestError("Missing Stripe-Signature header.")

        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError:
            logging.warning("Rejected webhook with a payload that is not UTF-8")
            raise InvalidRequestError("Webhook payload is not valid UTF-8.")

        try:
            stripe.WebhookSignature.verify_header(
                body, signature, self.webhook_secret, tolerance=SIGNATURE_TOLERANCE_SECONDS
            )
        except stripe.SignatureVerificationError:
            logging.warning("Rejected webhook with an invalid signature")
            raise InvalidRequestError("Webhook signature verification failed.")

        try:
            event = json.loads(body)
        except ValueError:
            raise InvalidRequestError("Webhook payload is not valid JSON.")
        if not isinstance(event, dict) or "id" not in event or "type" not in event:
            raise InvalidRequestError("Webhook payload is not a Stripe event.")
        return event

    def apply_event(self, db: Session, event: Dict[str, Any]) -> bool:
        """
        Apply a verified event. Returns True when it changed anything.

        Replayed event IDs are acknowledged without effect.
        """
        event_id = event["id"]
        event_type = event["type"]
        data = event.get("data")
        obj = data.get("object") if isinstance(data, dict) else None
        if not isinstance(obj, dict):
            obj = {}
        logging.info(f"Stripe webhook received: {event_type} ({event_id})")

        if crud.event_processed(db, event_id):
            logging.info(f"Webhook event {event_id} already processed")
            return False

        if event_type == "checkout.session.completed":
            return self._checkout_completed(db, event_id, event_type, obj)

        if event_type in ("payment_intent.succeeded", "payment_intent.payment_failed"):
            status = "completed" if event_type == "payment_intent.succeeded" else "failed"
            updated = crud.update_payment_status(db, obj.get("id", ""), status)
            crud.mark_event_processed(db, event_id, event_type)
            return updated > 0

        logging.info(f"Unhandled Stripe event type: {event_type}")
        crud.mark_event_processed(db, event_id, event_type)
        return False

    def _checkout_completed(self, db: Session, event_id: str, event_type: str,
                            session: Dict[str, Any]) -> bool:
        metadata = session.get("metadata")
        if not isinstance(metadata, dict):
            metadata = {}
        user_id = metadata.get("userId")
        if not user_id:
            logging.error(f"Checkout session {session.get('id')} has no userId in metadata")
            crud.mark_event_processed(db, event_id, event_type)
            return False

        payment_status = session.get("payment_status")
        if payment_status is not None and payment_status != "paid":
            logging.info(f"Checkout session {session.get('id')} not paid yet ({payment_status})")
            crud.mark_event_processed(db, event_id, event_type)
            return False

        try:
            minutes = int(metadata.get("minutesPurchased") or self.package_minutes)
        except ValueError:
            minutes = self.package_minutes

        credited = crud.credit_purchase(
            db,
            event_id=event_id,
            event_type=event_type,
            user_id=user_id,
            session_id=session.get("id") or event_id,
            payment_intent=session.get("payment_intent"),
            amount=session.get("amount_total") or self.package_price,
            currency=session.get("currency") or self.currency,
            minutes_purchased=minutes,
        )
        if credited:
            logging.info(f"User {user_id} credited with {minutes} minutes")
        return credited
