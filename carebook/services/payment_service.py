"""Simulated payment gate run before a booking is reserved."""

import asyncio
from decimal import Decimal

import structlog

from carebook.core.exceptions import PaymentFailed
from carebook.schemas.appointments import PaymentDetails

logger = structlog.get_logger()


class SimulatedPaymentProcessor:
    """Stand-in for a card gateway: validates the form, then waits."""

    def __init__(self, delay_seconds: float = 2.0):
        self.delay_seconds = delay_seconds

    async def charge(self, amount: Decimal, details: PaymentDetails) -> None:
        """
        Take a (pretend) payment.

        Raises:
            PaymentFailed: If any card field is blank
        """
        if not (details.card_number.strip() and details.expiry.strip() and details.cvc.strip()):
            logger.info("payment_rejected", reason="incomplete_card_details")
            raise PaymentFailed("Please fill in all card details.")

        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        logger.info("payment_accepted", amount=str(amount))
