# provide dataclass models

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional, Tuple

Role = Literal["customer", "retailer", "wholesaler"]
ROLES: Tuple[str, ...] = ("customer", "retailer", "wholesaler")
SELLER_ROLES: Tuple[str, ...] = ("retailer", "wholesaler")

PaymentMethod = Literal["online", "cod"]
PAYMENT_METHODS: Tuple[str, ...] = ("online", "cod")

# forward-only; "cancelled" sits beside the chain and is only reachable via cancel
ORDER_FLOW: Tuple[str, ...] = ("pending", "processing", "shipped", "delivered")
ORDER_CANCELLED = "cancelled"
ORDER_STATUSES: Tuple[str, ...] = ORDER_FLOW + (ORDER_CANCELLED,)
# action -> (from, to)
ORDER_ACTIONS = {
    "accept": ("pending", "processing"),
    "ship": ("processing", "shipped"),
    "deliver": ("shipped", "delivered"),
}
CANCELLABLE_STATUSES: Tuple[str, ...] = ("pending", "processing")

WHOLESALE_FLOW: Tuple[str, ...] = ("pending", "processing", "completed")
WHOLESALE_ACTIONS = {
    "process": ("pending", "processing"),
    "complete": ("processing", "completed"),
}


@dataclass(frozen=True)
class User:
    uid: int
    name: str
    email: str
    role: str  # "customer", "retailer" or "wholesaler"


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    description: str
    price: float
    stock: int
    category: str
    owner_id: int
    created_at: datetime


@dataclass(frozen=True)
class CartLine:
    product_id: int
    seller_id: int
    unit_price: float  # price at the time the product was added
    quantity: int
    name: str
    category: str

    @property
    def subtotal(self) -> float:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class OrderItem:
    product_id: int
    name: str
    unit_price: float
    quantity: int

    @property
    def subtotal(self) -> float:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Order:
    id: str
    customer_id: int
    retailer_id: int
    items: Tuple[OrderItem, ...]
    total_amount: float
    delivery_address: str
    payment_method: str
    status: str
    created_at: datetime
    estimated_delivery: datetime
    checkout_id: str
    version: int


@dataclass(frozen=True)
class WholesaleOrder:
    id: str
    product_id: int
    product_name: str
    quantity: int
    wholesaler_id: int
    retailer_id: int
    status: str
    total_price: float
    created_at: datetime
    version: int


@dataclass(frozen=True)
class Feedback:
    id: int
    order_id: str
    customer_id: int
    rating: int
    comment: str
    created_at: datetime


@dataclass(frozen=True)
class Notification:
    id: int
    uid: int
    title: str
    message: str
    kind: str  # "order_received" or "order_update"
    order_id: Optional[str]
    created_at: datetime
    read: bool
