"""Checkout load test scenarios.

Stateful SequentialTaskSet journeys over the cart, order and payment
endpoints, plus a contention user that competes for the scarcest product.
"""

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import (
    SCARCE_PRODUCT_ID,
    account_id,
    auth_headers,
    cart_line,
    checkout_data,
    client_cart,
    order_data,
    signed_success_webhook,
)
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import CheckoutState


class _ShopperJourney(SequentialTaskSet):
    def on_start(self):
        account = account_id()
        self.state = CheckoutState(account_id=account, headers=auth_headers(account))

    def _create_intent(self):
        with self.client.post(
            "/payments/intent",
            json={"order_id": self.state.order_id},
            headers=self.state.headers,
            catch_response=True,
            name="POST /payments/intent",
        ) as resp:
            if resp.status_code == 200:
                self.state.intent_id = resp.json()["payment_intent_id"]
            else:
                resp.failure(f"Create intent failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    def _deliver_webhook(self):
        payload, headers = signed_success_webhook(self.state.intent_id, self.state.order_id)
        with self.client.post(
            "/payments/webhook",
            data=payload,
            headers=headers,
            catch_response=True,
            name="POST /payments/webhook",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Webhook rejected: {resp.status_code} - {extract_error_detail(resp)}")
            elif resp.json()["outcome"] not in ("paid", "already_paid"):
                resp.failure(f"Unexpected webhook outcome: {resp.json()['outcome']}")

    def _confirm(self):
        with self.client.post(
            "/payments/confirm",
            json={"order_id": self.state.order_id, "payment_intent_id": self.state.intent_id},
            headers=self.state.headers,
            catch_response=True,
            name="POST /payments/confirm",
        ) as resp:
            if resp.status_code == 200 and resp.json()["is_paid"]:
                self.state.is_paid = True
            else:
                resp.failure(f"Order not paid after confirm: {resp.status_code} - {extract_error_detail(resp)}")


class CheckoutJourney(_ShopperJourney):
    """Add lines -> View cart -> Checkout -> Create intent -> Webhook -> Confirm.

    The happy path of a signed-in shopper. The provider's webhook lands before
    the client confirmation, so the confirmation must find the order already
    paid and return it unchanged.
    """

    @task
    def add_line_1(self):
        self._add_line()

    @task
    def add_line_2(self):
        self._add_line()

    def _add_line(self):
        with self.client.post(
            "/cart/items",
            json=cart_line(),
            headers=self.state.headers,
            catch_response=True,
            name="POST /cart/items",
        ) as resp:
            if resp.status_code == 200:
                self.state.line_count = len(resp.json()["lines"])
            elif resp.status_code == 409:
                # Sold out under load; the journey continues with what it has
                resp.success()
            else:
                resp.failure(f"Add line failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def view_cart(self):
        with self.client.get("/cart", headers=self.state.headers, catch_response=True, name="GET /cart") as resp:
            if resp.status_code != 200:
                resp.failure(f"View cart failed: {resp.status_code} - {extract_error_detail(resp)}")
            elif not resp.json()["lines"]:
                self.interrupt()

    @task
    def checkout(self):
        with self.client.post(
            "/cart/checkout",
            json=checkout_data(),
            headers=self.state.headers,
            catch_response=True,
            name="POST /cart/checkout",
        ) as resp:
            if resp.status_code == 201:
                body = resp.json()
                self.state.order_id = body["id"]
                self.state.total_price = body["total_price"]
            elif resp.status_code == 409:
                resp.success()
                self.interrupt()
            else:
                resp.failure(f"Checkout failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def create_intent(self):
        self._create_intent()

    @task
    def webhook(self):
        self._deliver_webhook()

    @task
    def confirm(self):
        self._confirm()

    @task
    def done(self):
        self.interrupt()


class GuestSyncJourney(_ShopperJourney):
    """Sync offline cart -> Checkout.

    A guest signs in holding a cart built on the client. The merged server cart
    is checked out straight away; payment is left for later.
    """

    @task
    def sync_cart(self):
        with self.client.post(
            "/cart/sync",
            json=client_cart(),
            headers=self.state.headers,
            catch_response=True,
            name="POST /cart/sync",
        ) as resp:
            if resp.status_code == 200:
                self.state.line_count = len(resp.json()["lines"])
            else:
                resp.failure(f"Sync failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def checkout(self):
        with self.client.post(
            "/cart/checkout",
            json=checkout_data(),
            headers=self.state.headers,
            catch_response=True,
            name="POST /cart/checkout",
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()
            else:
                resp.failure(f"Checkout failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class PaymentRaceJourney(_ShopperJourney):
    """Place order -> Create intent -> Webhook and confirmation back to back.

    Both payment paths land on the same order as close together as Locust
    allows; either may win, and the order must end up paid either way.
    """

    @task
    def place_order(self):
        with self.client.post(
            "/orders",
            json=order_data(num_lines=1),
            headers=self.state.headers,
            catch_response=True,
            name="POST /orders",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["id"]
            elif resp.status_code == 409:
                resp.success()
                self.interrupt()
            else:
                resp.failure(f"Place order failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def create_intent(self):
        self._create_intent()

    @task
    def race(self):
        self._deliver_webhook()
        self._confirm()

    @task
    def done(self):
        self.interrupt()


class CheckoutUser(HttpUser):
    """Signed-in and guest shoppers, weighted toward the full checkout."""

    wait_time = between(1, 3)
    tasks = {CheckoutJourney: 3, GuestSyncJourney: 1, PaymentRaceJourney: 1}


class StockContentionUser(HttpUser):
    """Many shoppers ordering one unit of the scarcest product at once.

    Once stock runs out every placement must fail with 409 and report what is
    left; anything else means the guard let an order through without stock.
    """

    wait_time = between(0.1, 0.5)

    def on_start(self):
        self.headers = auth_headers(account_id())

    @task
    def place_scarce_order(self):
        payload = order_data(num_lines=0)
        payload["items"] = [cart_line(product_id=SCARCE_PRODUCT_ID, quantity=1)]
        with self.client.post(
            "/orders",
            json=payload,
            headers=self.headers,
            catch_response=True,
            name="POST /orders [scarce]",
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409 and resp.json().get("available", 0) < 1:
                resp.success()
            else:
                resp.failure(f"Unexpected placement result: {resp.status_code} - {extract_error_detail(resp)}")
