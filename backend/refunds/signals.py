from django.dispatch import Signal, receiver
import logging

logger = logging.getLogger(__name__)

# Sent after the transaction that recorded a refund commits.
# kwargs: refund
refund_created = Signal()


@receiver(refund_created)
def log_refund_created(sender, refund, **kwargs):
    logger.info(
        f"Refund {refund.id}: {refund.amount} against payment {refund.payment_id} "
        f"of order {refund.order_id} ({'partial' if refund.is_partial else 'full'})"
    )
