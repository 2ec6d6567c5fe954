import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture

from ordering.catalog import reset_catalog, set_catalog
from ordering.catalog.memory_adapter import InMemoryCatalog
from ordering.catalog.port import ProductInfo
from ordering.payment.gateway import reset_gateway, set_gateway
from ordering.payment.gateway.fake_adapter import FakeGateway

WEBHOOK_SECRET = "whsec_test"


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def catalog():
    catalog = InMemoryCatalog(
        [
            ProductInfo(id="P1", name="Classic Tee", price=34.99, inventory=50, image="/img/tee.jpg"),
            ProductInfo(id="P2", name="Canvas Tote", price=20.00, inventory=3, image="/img/tote.jpg"),
            ProductInfo(id="P3", name="Wool Beanie", price=12.50, inventory=1),
            ProductInfo(id="P-OFF", name="Retired Cap", price=9.99, inventory=10, is_active=False),
        ]
    )
    set_catalog(catalog)
    yield catalog
    reset_catalog()


@pytest.fixture(autouse=True)
def gateway():
    gateway = FakeGateway(webhook_secret=WEBHOOK_SECRET)
    set_gateway(gateway)
    yield gateway
    reset_gateway()
