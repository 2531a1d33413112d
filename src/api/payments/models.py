from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.config.constants import StatusBucket


class PaymentTransactionSchema(BaseModel):
    """Snapshot of a payment_transactions row as read by the locator."""

    id: str
    transaction_reference: str
    gateway_transaction_id: Optional[str] = None
    order_id: str
    user_id: str
    status: str
    failure_reason: Optional[str] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class NormalizedWebhookEvent(BaseModel):
    """Canonical view of a gateway payload, whatever shape it arrived in."""

    reference: Optional[str] = None
    gateway_id: Optional[str] = None
    raw_status: str = ""
    bucket: StatusBucket = StatusBucket.UNRECOGNIZED
    failure_reason: Optional[str] = None
    webhook_data: Dict[str, Any] = Field(default_factory=dict)


class WebhookAckSchema(BaseModel):
    received: bool = True


class PaymentStatusSchema(BaseModel):
    status: str
    payment_reference: str
    order_id: str
    updated_at: Optional[str] = None
