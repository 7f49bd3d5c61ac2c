# error taxonomy shared by the data layer and the views


class LiveMartError(Exception):
    """Base class for every error the storefront raises on purpose."""


class ValidationError(LiveMartError, ValueError):
    """Input rejected before anything was written."""


class NotFoundError(LiveMartError, LookupError):
    """An order, product or user id does not resolve."""


class AccessDenied(LiveMartError, PermissionError):
    """The acting user does not own the record they tried to change."""


class InvalidTransition(LiveMartError):
    """The requested status change is not allowed from the current status."""

    def __init__(self, record_id: str, current: str, requested: str) -> None:
        super().__init__(
            f"{record_id}: cannot move from '{current}' with '{requested}'"
        )
        self.record_id = record_id
        self.current = current
        self.requested = requested


class OutOfStock(LiveMartError):
    """A conditional stock decrement found fewer units than requested."""

    def __init__(self, product_id: int, requested: int, available: int) -> None:
        super().__init__(
            f"product {product_id}: requested {requested}, only {available} left"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class ConcurrentUpdate(LiveMartError):
    """A compare-and-swap write lost against another writer."""


class RemoteOperationError(LiveMartError):
    """The store was unreachable or rejected the write."""
