"""Typed failures for the order core.

Every error carries a stable ``code`` the API layer hands back to clients.
Raising any of them inside an ``atomic`` block rolls back the whole operation.
"""


class ShopError(Exception):
    code = "SHOP_ERROR"
    http_status = 400
    transient = False

    def __init__(self, message: str = "", *, code: str | None = None):
        if code:
            self.code = code
        self.message = message or self.code
        super().__init__(self.message)

    def __str__(self):
        return f"[{self.code}] {self.message}"


# ============================================================
# VALIDATION (rejected before any lock is taken)
# ============================================================

class ValidationFailed(ShopError):
    code = "VALIDATION_ERROR"
    http_status = 400


# ============================================================
# BUSINESS RULES
# ============================================================

class BusinessRuleViolation(ShopError):
    code = "BUSINESS_RULE_VIOLATION"
    http_status = 409


class InsufficientStock(BusinessRuleViolation):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_name: str, requested: int, available: int):
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Out of stock: {product_name} (requested {requested}, available {available})"
        )


class InvalidStatusTransition(BusinessRuleViolation):
    code = "INVALID_STATUS_TRANSITION"


# ============================================================
# LOOKUPS / INTEGRITY / CONCURRENCY
# ============================================================

class ResourceNotFound(ShopError):
    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, resource: str, identifier):
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            f"{resource} not found: {identifier}",
            code=f"{resource.upper().replace(' ', '_')}_NOT_FOUND",
        )


class DataIntegrityError(ShopError):
    code = "DATA_INTEGRITY_ERROR"
    http_status = 500


class ConcurrencyConflict(ShopError):
    """Lock-wait timeout, deadlock or serialization failure. Safe to retry from the top."""

    code = "CONCURRENCY_CONFLICT"
    http_status = 409
    transient = True
