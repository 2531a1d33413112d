from typing import Optional

from src.api.payments.models import PaymentTransactionSchema
from src.api.payments.repository import PaymentRepository
from src.shared.error_handler import AmbiguousTransactionError, ErrorHandler
from src.shared.exceptions import ResourceNotFoundException


class TransactionLocator:
    """Resolve a webhook's reference / gateway id to exactly one transaction."""

    def __init__(self, repository: PaymentRepository):
        self.repository = repository
        self._error_handler = ErrorHandler(__name__)

    async def locate(
        self, reference: Optional[str], gateway_id: Optional[str]
    ) -> PaymentTransactionSchema:
        logger = self._error_handler.logger

        if not reference and not gateway_id:
            logger.error("Webhook carried neither a reference nor a gateway transaction id")
            raise ResourceNotFoundException("Transaction not found")

        matches = await self.repository.find_transactions(reference, gateway_id)

        if not matches:
            logger.error(
                f"Transaction not found: reference={reference!r} gateway_id={gateway_id!r}"
            )
            raise ResourceNotFoundException("Transaction not found")

        if len(matches) > 1:
            ids = [m.id for m in matches]
            logger.error(
                f"Multiple transactions matched reference={reference!r} "
                f"gateway_id={gateway_id!r}: {ids}"
            )
            raise AmbiguousTransactionError(
                "Webhook identifiers matched more than one transaction",
                context={"reference": reference, "gateway_id": gateway_id, "ids": ids},
            )

        return matches[0]
