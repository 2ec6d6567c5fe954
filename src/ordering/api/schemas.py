"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from internal
Protean commands. Request bodies reject unknown fields, and quantities must be
real integers rather than strings or floats that happen to convert.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class StrictRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(StrictRequest):
    street: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    zip_code: str = Field(min_length=1, max_length=20)
    country: str = Field(min_length=1, max_length=100)


class CartLineSchema(StrictRequest):
    product_id: str = Field(min_length=1)
    quantity: int = Field(ge=1, strict=True)
    size: str = Field(min_length=1, max_length=50)
    color: str = Field(min_length=1, max_length=50)

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "examples": [
                {
                    "product_id": "65f1c0ffee0000000000a001",
                    "quantity": 2,
                    "size": "M",
                    "color": "Black",
                }
            ]
        },
    )


class ClientPricesSchema(StrictRequest):
    items_price: float | None = None
    tax_price: float | None = None
    shipping_price: float | None = None
    total_price: float | None = None


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class UpdateCartLineRequest(StrictRequest):
    product_id: str = Field(min_length=1)
    size: str = Field(min_length=1, max_length=50)
    color: str = Field(min_length=1, max_length=50)
    quantity: int = Field(ge=0, strict=True)


class SyncCartRequest(StrictRequest):
    lines: list[CartLineSchema]


class CheckoutRequest(StrictRequest):
    shipping_address: AddressSchema
    payment_method: str = Field(min_length=1, max_length=50)
    prices: ClientPricesSchema | None = None


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(StrictRequest):
    items: list[CartLineSchema] = Field(min_length=1)
    shipping_address: AddressSchema
    payment_method: str = Field(min_length=1, max_length=50)
    prices: ClientPricesSchema | None = None


# ---------------------------------------------------------------------------
# Payment Request Schemas
# ---------------------------------------------------------------------------
class CreateIntentRequest(StrictRequest):
    order_id: str = Field(min_length=1)


class ConfirmPaymentRequest(StrictRequest):
    order_id: str = Field(min_length=1)
    payment_intent_id: str = Field(min_length=1)


class SetDefaultPaymentMethodRequest(StrictRequest):
    payment_method_id: str = Field(min_length=1, max_length=255)


class ConfigureGatewayRequest(StrictRequest):
    available: bool = True
    latency: float = Field(default=0.0, ge=0.0)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CartLineView(BaseModel):
    product_id: str
    quantity: int
    size: str
    color: str
    name: str | None = None
    price: float | None = None
    image: str | None = None
    inventory: int | None = None


class CartView(BaseModel):
    account_id: str
    lines: list[CartLineView]
    updated_at: datetime | None = None


class OrderItemView(BaseModel):
    product_id: str
    name: str
    price: float
    quantity: int
    size: str
    color: str
    image: str | None = None


class AddressView(BaseModel):
    street: str
    city: str
    state: str | None = None
    zip_code: str
    country: str


class PaymentResultView(BaseModel):
    id: str
    status: str
    update_time: datetime
    email_address: str | None = None


class OrderView(BaseModel):
    id: str
    owner_id: str
    items: list[OrderItemView]
    shipping_address: AddressView
    payment_method: str
    items_price: float
    tax_price: float
    shipping_price: float
    total_price: float
    is_paid: bool
    paid_at: datetime | None = None
    payment_status: str
    payment_result: PaymentResultView | None = None
    is_delivered: bool
    delivered_at: datetime | None = None
    created_at: datetime | None = None


class IntentResponse(BaseModel):
    client_secret: str
    payment_intent_id: str


class SetupIntentResponse(BaseModel):
    client_secret: str
    setup_intent_id: str


class PaymentMethodView(BaseModel):
    id: str
    type: str
    brand: str | None = None
    last4: str | None = None
    exp_month: int | None = None
    exp_year: int | None = None
    is_default: bool = False


class DefaultPaymentMethodResponse(BaseModel):
    default_payment_method_id: str


class WebhookResponse(BaseModel):
    received: bool = True
    outcome: str


class GatewayConfigResponse(BaseModel):
    gateway: str
    available: bool
    latency: float
