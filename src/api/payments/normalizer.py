"""
Gateway payload normalization.

Gateways disagree on field names and nesting (``status`` vs ``payment_status``,
top-level vs under ``data``). Each canonical field is described by an ordered
list of field paths; the first non-empty scalar wins.
"""

from typing import Any, Dict, Iterable, Optional, Tuple

from src.api.payments.models import NormalizedWebhookEvent
from src.config.constants import (
    CANCELLED_STATUSES,
    FAILED_STATUSES,
    PENDING_STATUSES,
    SUCCESS_STATUSES,
    StatusBucket,
)

FieldPath = Tuple[str, ...]

REFERENCE_PATHS: Tuple[FieldPath, ...] = (
    ("order_id",),
    ("data", "order_id"),
    ("reference",),
    ("transaction_reference",),
)

GATEWAY_ID_PATHS: Tuple[FieldPath, ...] = (
    ("transaction_id",),
    ("data", "transaction_id"),
    ("gateway_transaction_id",),
)

STATUS_PATHS: Tuple[FieldPath, ...] = (
    ("status",),
    ("data", "status"),
    ("payment_status",),
    ("data", "payment_status"),
    ("event_type",),
    ("event",),
    ("type",),
)

FAILURE_REASON_PATHS: Tuple[FieldPath, ...] = (
    ("failure_reason",),
    ("data", "failure_reason"),
)

# Checked in order; a status can only land in one bucket
STATUS_BUCKETS = (
    (SUCCESS_STATUSES, StatusBucket.SUCCESS),
    (PENDING_STATUSES, StatusBucket.PENDING),
    (CANCELLED_STATUSES, StatusBucket.CANCELLED),
    (FAILED_STATUSES, StatusBucket.FAILED),
)


def resolve_path(payload: Dict[str, Any], path: FieldPath) -> Any:
    node: Any = payload
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def first_present(payload: Dict[str, Any], paths: Iterable[FieldPath]) -> Optional[str]:
    for path in paths:
        value = resolve_path(payload, path)
        if not value or isinstance(value, (dict, list)):
            continue
        return str(value)
    return None


def classify_status(raw_status: str) -> StatusBucket:
    for vocabulary, bucket in STATUS_BUCKETS:
        if raw_status in vocabulary:
            return bucket
    return StatusBucket.UNRECOGNIZED


def normalize_webhook_payload(payload: Dict[str, Any]) -> NormalizedWebhookEvent:
    reference = first_present(payload, REFERENCE_PATHS)
    gateway_id = first_present(payload, GATEWAY_ID_PATHS)
    raw_status = (first_present(payload, STATUS_PATHS) or "").strip().upper()

    # Persist the gateway id alongside the raw payload for forensic replay
    webhook_data = dict(payload)
    webhook_data["gateway_transaction_id"] = (
        gateway_id
        or payload.get("gateway_transaction_id")
        or resolve_path(payload, ("data", "transaction_id"))
    )

    return NormalizedWebhookEvent(
        reference=reference,
        gateway_id=gateway_id,
        raw_status=raw_status,
        bucket=classify_status(raw_status),
        failure_reason=first_present(payload, FAILURE_REASON_PATHS),
        webhook_data=webhook_data,
    )
