from django.dispatch import Signal, receiver
import logging

logger = logging.getLogger(__name__)

# Sent after the transaction that closed an order commits.
# kwargs: order, payments, change
order_closed = Signal()

# Sent after the transaction that cancelled an order commits.
# kwargs: order
order_cancelled = Signal()


@receiver(order_closed)
def log_order_closed(sender, order, payments, change=None, **kwargs):
    methods = ", ".join(f"{payment.method} {payment.amount}" for payment in payments)
    logger.info(
        f"Order {order.id} closed at {order.closed_at.isoformat()} with [{methods}]"
        + (f", change {change}" if change else "")
    )


@receiver(order_cancelled)
def log_order_cancelled(sender, order, **kwargs):
    logger.info(f"Order {order.id} cancelled at {order.cancelled_at.isoformat()}")
