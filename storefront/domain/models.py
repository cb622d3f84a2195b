# storefront/domain/models.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, List, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from storefront.domain.pricing import ZERO


class Record(BaseModel):
    """Base for everything kept in the collection store (camelCase on disk and on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, row: dict):
        return cls.model_validate(row)


class Product(Record):
    # catalog rows carry more fields than we need, keep them in the snapshot
    model_config = ConfigDict(extra="allow")

    id: str
    title: str = ""
    price: Decimal
    currency: str = "USD"
    category: str | None = None


# =====================================================
# CART
# =====================================================
class CartItem(Record):
    id: str
    product_id: str
    product: Product
    quantity: int = Field(..., ge=1)
    # captured at add-time, never refreshed from the catalog
    price: Decimal
    date_added: str


class Cart(Record):
    id: str
    user_id: str | None = "guest"
    items: List[CartItem] = Field(default_factory=list)
    subtotal: Decimal = ZERO
    tax: Decimal = ZERO
    shipping: Decimal = ZERO
    discount: Decimal = ZERO
    total: Decimal = ZERO
    currency: str = "USD"
    coupon_code: str | None = None
    free_shipping: bool = False
    date_created: str | None = None
    date_modified: str | None = None

    def find_item(self, item_id: str) -> CartItem | None:
        return next((i for i in self.items if i.id == item_id), None)

    def find_product_line(self, product_id: str) -> CartItem | None:
        return next((i for i in self.items if i.product_id == product_id), None)


# =====================================================
# ORDER
# =====================================================
class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class OrderItem(Record):
    product_id: str
    title: str = ""
    quantity: int = Field(..., ge=1)
    price: Decimal
    unit_amount: int
    currency: str = "USD"


class PaymentSnapshot(Record):
    amount_received: int | None = None
    currency: str | None = None
    payment_intent: str | None = None
    payment_status: str | None = None


class OrderEvent(Record):
    id: str
    type: str
    received_at: str


class Order(Record):
    id: str
    user_id: str = "guest"
    session_id: str
    items: List[OrderItem] = Field(default_factory=list)
    subtotal: Decimal = ZERO
    tax: Decimal = ZERO
    shipping: Decimal = ZERO
    total: Decimal = ZERO
    amount_total: int = 0
    currency: str = "USD"
    coupon_code: str | None = None
    status: OrderStatus = OrderStatus.PENDING
    payment: PaymentSnapshot | None = None
    events: List[OrderEvent] = Field(default_factory=list)
    date_created: str | None = None
    date_modified: str | None = None


class ProcessedEvent(Record):
    """Idempotency ledger row, stored under the provider's event id."""

    id: str
    event_id: str
    type: str
    processed_at: str


# =====================================================
# COUPON
# =====================================================
class CouponScope(Record):
    type: Literal["all", "categories", "products"] = "all"
    categories: List[str] = Field(default_factory=list)
    products: List[str] = Field(default_factory=list)


class Coupon(Record):
    id: str
    code: str
    type: Literal["percentage", "fixed"] = "percentage"
    value: Decimal
    min_subtotal: Decimal | None = None
    max_discount: Decimal | None = None
    expires_at: datetime | None = None
    usage_limit: int | None = None
    used_count: int = 0
    applies_to: CouponScope | None = None
    is_active: bool = True
    free_shipping: bool = False


class CouponRejection(str, Enum):
    NOT_FOUND = "NotFound"
    EXPIRED = "Expired"
    MINIMUM_NOT_MET = "MinimumNotMet"
    ALREADY_APPLIED = "AlreadyApplied"
    USAGE_LIMIT_EXCEEDED = "UsageLimitExceeded"
    NOT_APPLICABLE = "NotApplicable"


class CouponValidation(Record):
    valid: bool
    reason: CouponRejection | None = None
    code: str | None = None
    discount: Decimal | None = None
    free_shipping: bool | None = None


# =====================================================
# PAYMENT PROVIDER
# =====================================================
class CheckoutSession(BaseModel):
    id: str
    url: str | None = None


class WebhookEvent(BaseModel):
    id: str
    type: str
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def object(self) -> dict[str, Any]:
        return self.data.get("object") or {}
