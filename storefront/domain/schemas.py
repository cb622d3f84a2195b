# storefront/domain/schemas.py
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RequestIn(BaseModel):
    """Request bodies: camelCase on the wire, unknown keys rejected."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class AddItemIn(RequestIn):
    user_id: str | None = None
    product_id: str = Field(..., min_length=1)
    # range is checked by the cart service (400, not 422)
    quantity: int = 1


class UpdateItemIn(RequestIn):
    user_id: str | None = None
    quantity: int


class ClearCartIn(RequestIn):
    user_id: str | None = None


class ApplyCouponIn(RequestIn):
    user_id: str | None = None
    code: str = Field(..., min_length=1, max_length=64)


class CheckoutItemIn(RequestIn):
    product_id: str = Field(..., min_length=1)
    quantity: int = 1


class CreateCheckoutSessionIn(RequestIn):
    items: List[CheckoutItemIn] = Field(default_factory=list)
    success_url: str | None = None
    cancel_url: str | None = None
    metadata: Dict[str, Any] | None = None


class CheckoutSessionOut(BaseModel):
    """Session handle for the client. `url` and `redirectUrl` carry the same link."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    session_id: str
    url: str | None = None
    redirect_url: str | None = None
    order_id: str | None = None

    @classmethod
    def from_result(cls, res: dict) -> "CheckoutSessionOut":
        return cls(
            id=res["sessionId"],
            session_id=res["sessionId"],
            url=res["url"],
            redirect_url=res["url"],
            order_id=res["orderId"],
        )


class WebhookAck(BaseModel):
    received: bool = True
    idempotent: bool | None = None
