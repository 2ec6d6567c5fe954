"""FastAPI routes for the Ordering domain: cart, orders and payments.

Handlers are plain functions: they block on the repository and the payment
provider, so FastAPI runs them in its threadpool instead of on the event loop.
"""

import json

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering import settings
from ordering.api.auth import Principal, admin_principal, current_principal
from ordering.api.schemas import (
    AddressView,
    CartLineSchema,
    CartLineView,
    CartView,
    CheckoutRequest,
    ConfigureGatewayRequest,
    ConfirmPaymentRequest,
    CreateIntentRequest,
    DefaultPaymentMethodResponse,
    GatewayConfigResponse,
    IntentResponse,
    OrderItemView,
    OrderView,
    PaymentMethodView,
    PaymentResultView,
    PlaceOrderRequest,
    SetDefaultPaymentMethodRequest,
    SetupIntentResponse,
    SyncCartRequest,
    UpdateCartLineRequest,
    WebhookResponse,
)
from ordering.cart.cart import Cart
from ordering.cart.checkout import checkout_cart
from ordering.cart.items import AddToCart, ClearCart, RemoveFromCart, UpdateCartQuantity
from ordering.cart.sync import MergeClientCart
from ordering.catalog import get_catalog
from ordering.errors import NotOrderOwner
from ordering.order.delivery import MarkDelivered
from ordering.order.order import Order
from ordering.order.placement import place_order
from ordering.order.pricing import PriceBreakdown
from ordering.payment import methods, reconciler
from ordering.payment.gateway import get_gateway
from ordering.payment.gateway.fake_adapter import FakeGateway


# ---------------------------------------------------------------------------
# View builders
# ---------------------------------------------------------------------------
def _cart_view(account_id) -> CartView:
    try:
        cart = current_domain.repository_for(Cart).get(account_id)
    except ObjectNotFoundError:
        return CartView(account_id=str(account_id), lines=[])

    catalog = get_catalog()
    lines = []
    for line in cart.lines:
        product = catalog.get_product(line.product_id)
        lines.append(
            CartLineView(
                product_id=str(line.product_id),
                quantity=line.quantity,
                size=line.size,
                color=line.color,
                name=product.name if product else None,
                price=product.price if product else None,
                image=product.image if product else None,
                inventory=product.inventory if product else None,
            )
        )
    return CartView(account_id=str(cart.account_id), lines=lines, updated_at=cart.updated_at)


def _order_view(order: Order) -> OrderView:
    prices = PriceBreakdown(
        items_price=order.items_price,
        tax_price=order.tax_price,
        shipping_price=order.shipping_price,
        total_price=order.total_price,
    ).for_display()
    address = order.shipping_address
    result = order.payment_result

    return OrderView(
        id=str(order.id),
        owner_id=str(order.owner_id),
        items=[OrderItemView(**item.to_dict()) for item in order.items],
        shipping_address=AddressView(
            street=address.street,
            city=address.city,
            state=address.state,
            zip_code=address.zip_code,
            country=address.country,
        ),
        payment_method=order.payment_method,
        is_paid=order.is_paid,
        paid_at=order.paid_at,
        payment_status=order.payment_status,
        payment_result=PaymentResultView(
            id=result.id,
            status=result.status,
            update_time=result.update_time,
            email_address=result.email_address,
        )
        if result
        else None,
        is_delivered=order.is_delivered,
        delivered_at=order.delivered_at,
        created_at=order.created_at,
        **prices,
    )


def _load_visible_order(order_id: str, principal: Principal) -> Order:
    order = current_domain.repository_for(Order).get_order(order_id)
    if not principal.is_admin and not order.is_owned_by(principal.account_id):
        raise NotOrderOwner(order_id)
    return order


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartView)
def get_cart(principal: Principal = Depends(current_principal)) -> CartView:
    return _cart_view(principal.account_id)


@cart_router.post("/items", response_model=CartView)
def add_cart_line(body: CartLineSchema, principal: Principal = Depends(current_principal)) -> CartView:
    command = AddToCart(
        account_id=principal.account_id,
        product_id=body.product_id,
        quantity=body.quantity,
        size=body.size,
        color=body.color,
    )
    current_domain.process(command, asynchronous=False)
    return _cart_view(principal.account_id)


@cart_router.put("/items", response_model=CartView)
def update_cart_line(
    body: UpdateCartLineRequest, principal: Principal = Depends(current_principal)
) -> CartView:
    command = UpdateCartQuantity(
        account_id=principal.account_id,
        product_id=body.product_id,
        size=body.size,
        color=body.color,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return _cart_view(principal.account_id)


@cart_router.delete("/items/{product_id}", response_model=CartView)
def remove_cart_line(
    product_id: str,
    size: str,
    color: str,
    principal: Principal = Depends(current_principal),
) -> CartView:
    command = RemoveFromCart(account_id=principal.account_id, product_id=product_id, size=size, color=color)
    current_domain.process(command, asynchronous=False)
    return _cart_view(principal.account_id)


@cart_router.delete("", response_model=CartView)
def clear_cart(principal: Principal = Depends(current_principal)) -> CartView:
    current_domain.process(ClearCart(account_id=principal.account_id), asynchronous=False)
    return _cart_view(principal.account_id)


@cart_router.post("/sync", response_model=CartView)
def sync_cart(body: SyncCartRequest, principal: Principal = Depends(current_principal)) -> CartView:
    """Merge the client's local cart into the server cart.

    The returned cart is authoritative. Clients must discard their local copy
    once this call succeeds; posting the same lines again adds them again.
    """
    command = MergeClientCart(
        account_id=principal.account_id,
        lines=json.dumps([line.model_dump() for line in body.lines]),
    )
    current_domain.process(command, asynchronous=False)
    return _cart_view(principal.account_id)


@cart_router.post("/checkout", status_code=201, response_model=OrderView)
def checkout(body: CheckoutRequest, principal: Principal = Depends(current_principal)) -> OrderView:
    order_id = checkout_cart(
        account_id=principal.account_id,
        shipping_address=body.shipping_address.model_dump(),
        payment_method=body.payment_method,
        client_prices=body.prices.model_dump(exclude_none=True) if body.prices else None,
    )
    return _order_view(current_domain.repository_for(Order).get_order(order_id))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderView)
def create_order(body: PlaceOrderRequest, principal: Principal = Depends(current_principal)) -> OrderView:
    order_id = place_order(
        owner_id=principal.account_id,
        lines=[line.model_dump() for line in body.items],
        shipping_address=body.shipping_address.model_dump(),
        payment_method=body.payment_method,
        client_prices=body.prices.model_dump(exclude_none=True) if body.prices else None,
    )
    return _order_view(current_domain.repository_for(Order).get_order(order_id))


@order_router.get("/mine", response_model=list[OrderView])
def my_orders(principal: Principal = Depends(current_principal)) -> list[OrderView]:
    orders = current_domain.repository_for(Order).owned_by(principal.account_id)
    return [_order_view(order) for order in orders]


@order_router.get("", response_model=list[OrderView])
def all_orders(principal: Principal = Depends(admin_principal)) -> list[OrderView]:
    return [_order_view(order) for order in current_domain.repository_for(Order).newest_first()]


@order_router.get("/{order_id}", response_model=OrderView)
def get_order(order_id: str, principal: Principal = Depends(current_principal)) -> OrderView:
    return _order_view(_load_visible_order(order_id, principal))


@order_router.put("/{order_id}/deliver", response_model=OrderView)
def deliver_order(order_id: str, principal: Principal = Depends(admin_principal)) -> OrderView:
    current_domain.process(MarkDelivered(order_id=order_id), asynchronous=False)
    return _order_view(current_domain.repository_for(Order).get_order(order_id))


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/intent", response_model=IntentResponse)
def create_payment_intent(
    body: CreateIntentRequest, principal: Principal = Depends(current_principal)
) -> IntentResponse:
    intent = reconciler.create_intent(
        order_id=body.order_id,
        account_id=principal.account_id,
        email=principal.email,
        name=principal.name,
    )
    return IntentResponse(client_secret=intent.client_secret, payment_intent_id=intent.id)


@payment_router.post("/confirm", response_model=OrderView)
def confirm_payment(
    body: ConfirmPaymentRequest, principal: Principal = Depends(current_principal)
) -> OrderView:
    order = reconciler.confirm_from_client(
        order_id=body.order_id,
        intent_id=body.payment_intent_id,
        account_id=principal.account_id,
    )
    return _order_view(order)


@payment_router.post("/setup-intent", response_model=SetupIntentResponse)
def create_setup_intent(principal: Principal = Depends(current_principal)) -> SetupIntentResponse:
    setup = methods.create_setup_intent(principal.account_id, email=principal.email, name=principal.name)
    return SetupIntentResponse(client_secret=setup.client_secret, setup_intent_id=setup.id)


@payment_router.get("/methods", response_model=list[PaymentMethodView])
def list_payment_methods(principal: Principal = Depends(current_principal)) -> list[PaymentMethodView]:
    return [PaymentMethodView(**method) for method in methods.list_payment_methods(principal.account_id)]


@payment_router.put("/methods/default", response_model=DefaultPaymentMethodResponse)
def set_default_payment_method(
    body: SetDefaultPaymentMethodRequest, principal: Principal = Depends(current_principal)
) -> DefaultPaymentMethodResponse:
    methods.set_default_payment_method(principal.account_id, body.payment_method_id)
    return DefaultPaymentMethodResponse(default_payment_method_id=body.payment_method_id)


@payment_router.post("/webhook", response_model=WebhookResponse)
async def payment_webhook(request: Request, stripe_signature: str = Header(default="")) -> WebhookResponse:
    """Provider callback. The raw body is needed for signature verification."""
    payload = await request.body()
    outcome = await run_in_threadpool(reconciler.on_webhook_event, payload, stripe_signature)
    return WebhookResponse(outcome=outcome)


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only)."""
    if settings.is_production():
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(available=body.available, latency=body.latency)
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        available=gateway.available,
        latency=gateway.latency,
    )
