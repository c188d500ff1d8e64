"""Stock-changed notification.

Sent only after the surrounding transaction commits. Receivers must be
idempotent: the same product can be announced more than once.
"""
import logging

from django.core.cache import cache
from django.db import transaction
from django.dispatch import Signal, receiver

from . import conf

logger = logging.getLogger(__name__)

# kwargs: product_ids (sorted list of ints)
stock_changed = Signal()


def publish_stock_changed(product_ids) -> None:
    ids = sorted(set(product_ids))
    if not ids:
        return
    transaction.on_commit(lambda: stock_changed.send(sender=None, product_ids=ids))


@receiver(stock_changed, dispatch_uid="shop.evict_product_detail_cache")
def evict_product_detail_cache(sender, product_ids, **kwargs):
    cache.delete_many([conf.product_detail_cache_key(pid) for pid in product_ids])
    logger.debug(f"evicted product detail cache: {product_ids}")
