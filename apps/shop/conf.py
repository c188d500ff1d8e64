from decimal import Decimal

from django.conf import settings

_DEFAULTS = {
    "RETURN_PERIOD_DAYS": 14,
    "BASE_SHIPPING_FEE": "3000",
    "PRODUCT_DETAIL_CACHE_KEY": "product_detail:{product_id}",
}


def _get(name):
    return getattr(settings, "SHOP", {}).get(name, _DEFAULTS[name])


def return_period_days() -> int:
    return int(_get("RETURN_PERIOD_DAYS"))


def base_shipping_fee() -> Decimal:
    return Decimal(str(_get("BASE_SHIPPING_FEE")))


def product_detail_cache_key(product_id) -> str:
    return _get("PRODUCT_DETAIL_CACHE_KEY").format(product_id=product_id)
