from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from src.api.payments.repository import PaymentRepository
from src.api.payments.service import PaymentWebhookService
from src.config.settings import settings
from src.core.responses import no_store_response
from src.database.connection import get_session_factory
from src.middleware.rate_limit import get_webhook_rate_limit, limiter
from src.shared.exceptions import ServiceUnavailableException
from src.shared.utils import get_logger, utc_now

logger = get_logger(__name__)

payments_router = APIRouter(prefix=f"{settings.API_PREFIX}/payments", tags=["Payments"])


def get_payment_webhook_service() -> PaymentWebhookService:
    session_factory = get_session_factory()
    if session_factory is None:
        raise ServiceUnavailableException("Webhook disabled: missing DATABASE_URL")
    return PaymentWebhookService(PaymentRepository(session_factory))


@payments_router.post(
    "/webhooks",
    summary="Payment gateway webhook",
)
@limiter.limit(get_webhook_rate_limit)
async def receive_payment_webhook(
    request: Request,
    service: Annotated[PaymentWebhookService, Depends(get_payment_webhook_service)],
    x_signature: str = Header(None, alias="X-Signature"),
    x_webhook_signature: str = Header(None, alias="X-Webhook-Signature"),
    x_api_key: str = Header(None, alias="X-API-Key"),
):
    """
    Server-to-server callback from the payment gateway.

    Security: HMAC-SHA256 of the raw body in X-Signature / X-Webhook-Signature,
    or the gateway's static key in X-API-Key.
    Unrecognized statuses are acknowledged with 200 so the gateway stops retrying.
    """
    # Signature covers the exact bytes, so read before any JSON parsing
    raw_body = await request.body()

    try:
        return await service.process_webhook(
            raw_body, x_signature or x_webhook_signature, x_api_key
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Webhook processing error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Webhook processing failed")


@payments_router.get(
    "/webhooks",
    summary="Webhook endpoint liveness probe",
)
async def webhook_liveness():
    return {
        "status": "webhook_active",
        "timestamp": utc_now().isoformat(),
    }


@payments_router.get(
    "/status/{ref}",
    summary="Check status of a payment transaction",
)
async def get_payment_status(
    ref: str,
    service: Annotated[PaymentWebhookService, Depends(get_payment_webhook_service)],
):
    """
    Polling endpoint for the storefront while a payment webhook is outstanding.
    """
    result = await service.get_transaction_status(ref)
    return no_store_response(result, "Payment status retrieved")
