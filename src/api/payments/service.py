import json
from typing import Any, Dict, Optional

from src.api.payments.cache import PaymentsCache, payments_cache
from src.api.payments.locator import TransactionLocator
from src.api.payments.models import PaymentStatusSchema, WebhookAckSchema
from src.api.payments.normalizer import normalize_webhook_payload
from src.api.payments.reconciler import PaymentStatusReconciler
from src.api.payments.repository import PaymentRepository
from src.api.payments.signature import WebhookSignatureVerifier
from src.shared.error_handler import ErrorHandler
from src.shared.exceptions import (
    BadRequestException,
    ResourceNotFoundException,
    UnauthorizedException,
)


class PaymentWebhookService:
    """
    Webhook reconciliation pipeline.
    verify -> parse -> normalize -> locate -> reconcile -> invalidate caches
    """

    def __init__(
        self,
        repository: PaymentRepository,
        verifier: Optional[WebhookSignatureVerifier] = None,
        cache: Optional[PaymentsCache] = None,
    ):
        self._error_handler = ErrorHandler(__name__)
        self.repository = repository
        self.verifier = verifier or WebhookSignatureVerifier.from_settings()
        self.cache = cache or payments_cache
        self.locator = TransactionLocator(repository)
        self.reconciler = PaymentStatusReconciler(repository)

    async def process_webhook(
        self,
        raw_body: bytes,
        signature: Optional[str],
        api_key: Optional[str],
    ) -> Dict[str, Any]:
        logger = self._error_handler.logger

        # 1. Authenticate against the exact bytes received
        if not self.verifier.authenticate(raw_body, signature, api_key):
            logger.warning("Rejected webhook: invalid signature and no valid API key")
            raise UnauthorizedException("Invalid webhook authentication")

        # 2. Parse
        payload = self._parse_payload(raw_body)

        # 3. Normalize
        event = normalize_webhook_payload(payload)
        logger.info(
            f"Webhook received: reference={event.reference!r} "
            f"gateway_id={event.gateway_id!r} status={event.raw_status or '(empty)'}"
        )

        # 4. Locate
        transaction = await self.locator.locate(event.reference, event.gateway_id)

        # 5. Reconcile
        log_event = await self.reconciler.reconcile(transaction, event)

        # 6. Invalidate dependent views
        if log_event is not None:
            self.cache.invalidate_transaction(transaction)

        return WebhookAckSchema().model_dump()

    @staticmethod
    def _parse_payload(raw_body: bytes) -> Dict[str, Any]:
        try:
            payload = json.loads(raw_body)
        except (ValueError, UnicodeDecodeError):
            raise BadRequestException("Invalid JSON payload")
        if not isinstance(payload, dict):
            raise BadRequestException("Invalid JSON payload")
        return payload

    async def get_transaction_status(self, payment_reference: str) -> Dict[str, Any]:
        """Current local status of a transaction, served from the tag cache when fresh."""
        cached = self.cache.get_payment_status(payment_reference)
        if cached is not None:
            return cached

        transaction = await self.repository.get_transaction_by_reference(
            payment_reference
        )
        if not transaction:
            raise ResourceNotFoundException("Transaction not found")

        status_data = PaymentStatusSchema(
            status=transaction.status,
            payment_reference=payment_reference,
            order_id=transaction.order_id,
            updated_at=transaction.updated_at.isoformat()
            if transaction.updated_at
            else None,
        ).model_dump()
        self.cache.set_payment_status(payment_reference, transaction.id, status_data)
        return status_data
