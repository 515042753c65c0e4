"""Payment-link provider (Interac e-Transfer request links).

No money moves through this service. The link is an opaque token attached to
the obligation and quoted in the tenant's notice.
"""

import logging
import uuid
from decimal import Decimal
from urllib.parse import urlencode

from rent_backoffice.config import settings
from rent_backoffice.core.exceptions import CollaboratorError

logger = logging.getLogger(__name__)


class PaymentLinkProvider:
    """Contract for payment-link collaborators"""

    async def generate_link(self, email: str, name: str, amount: Decimal, memo: str) -> str:
        raise NotImplementedError


class InteracRequestLinkProvider(PaymentLinkProvider):
    """Builds a request-money link that a real Interac integration can replace."""

    def __init__(self, base_url: str = None):
        self.base_url = (base_url or settings.PAYMENT_LINK_BASE_URL).rstrip("/")

    async def generate_link(self, email: str, name: str, amount: Decimal, memo: str = "Rent payment") -> str:
        if not email:
            raise CollaboratorError(f"Cannot request payment from {name}: no email on file")
        if amount is None or Decimal(amount) <= 0:
            raise CollaboratorError(f"Cannot request a payment of {amount}")

        params = urlencode({
            "email": email,
            "name": name,
            "amount": f"{Decimal(amount):.2f}",
            "message": memo,
            "reference": f"rent-{uuid.uuid4().hex[:12]}",
        })
        logger.debug("Generated payment link for %s (%s)", email, amount)
        return f"{self.base_url}?{params}"


def get_payment_link_provider() -> PaymentLinkProvider:
    return InteracRequestLinkProvider()
