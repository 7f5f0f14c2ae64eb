"""Domain-level errors for the marketplace.

Every error carries a stable ``kind`` and the HTTP status it maps to at the
API boundary. Services raise these; ``server.py`` renders them.
"""


class MarketplaceError(Exception):
    kind = "Internal"
    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail: str = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Internal(MarketplaceError):
    """Raised for unexpected failures."""


class Unauthenticated(MarketplaceError):
    """Raised when there is no verified caller identity."""

    kind = "Unauthenticated"
    status_code = 401
    default_detail = "User must be authenticated"


class MissingIdentity(Unauthenticated):
    kind = "MissingIdentity"
    default_detail = "Missing user identity"


class InvalidSignature(MarketplaceError):
    """Raised when a webhook event fails authenticity checks."""

    kind = "InvalidSignature"
    status_code = 400
    default_detail = "Invalid webhook signature"


class InvalidEventMetadata(InvalidSignature):
    kind = "InvalidEventMetadata"
    default_detail = "Webhook event is missing checkout metadata"


class NotFound(MarketplaceError):
    kind = "NotFound"
    status_code = 404
    default_detail = "Not found"


class PermissionDenied(MarketplaceError):
    """Raised when payment or ownership checks fail."""

    kind = "PermissionDenied"
    status_code = 403
    default_detail = "Access denied"


class NoPaymentRecord(PermissionDenied):
    kind = "NoPaymentRecord"
    default_detail = "Access denied: No payment record"


class NotPaid(PermissionDenied):
    kind = "NotPaid"
    default_detail = "Access denied: Payment not completed"


class ItemNotPurchased(PermissionDenied):
    kind = "ItemNotPurchased"
    default_detail = "Access denied: Payment not found"


class ItemNotApproved(PermissionDenied):
    kind = "ItemNotApproved"
    default_detail = "Item is not approved for sale"


class InvalidTransition(MarketplaceError):
    kind = "InvalidTransition"
    status_code = 409
    default_detail = "Invalid approval state transition"


class UpstreamFailure(MarketplaceError):
    """Raised when the payment provider or storage provider call fails."""

    kind = "UpstreamFailure"
    status_code = 502
    default_detail = "Upstream provider failure"


class CheckoutCreationFailed(UpstreamFailure):
    kind = "CheckoutCreationFailed"
    default_detail = "Unable to create checkout session"
