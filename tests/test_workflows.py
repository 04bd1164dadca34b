"""
Tests for the scenario behaviors, driven against a recorded fake client.
"""
import json
from types import SimpleNamespace

import pytest

from scenarios import workflows
from scenarios.workflows import (
    DemoblazeUser,
    LoginOnlyUser,
    PlaceOrderUser,
    SignupOnlyUser,
    SmokeUser,
    ViewCartUser,
)

from conftest import FakeClient, FakeResponse

SIGNED_UP = '""'
TOKEN = '"Auth_token: dGFuZ28="'
EMPTY_CART = json.dumps({'Items': []})
FULL_CART = json.dumps({'Items': [{'cookie': 'dGFuZ28=', 'id': 'x', 'prod_id': 1}]})


class FakeUser:
    """Just enough of a DemoblazeUser to run its tasks outside locust."""

    new_user = DemoblazeUser.new_user
    existing_user = DemoblazeUser.existing_user
    random_products = DemoblazeUser.random_products
    login_new_user = DemoblazeUser.login_new_user

    def __init__(self, config, *responses):
        self.config = config
        self.client = FakeClient(*responses)

    @property
    def request_names(self):
        return [call['name'] for call in self.client.calls]


class TestBehaviors:

    def test_signup_only(self, config):
        user = FakeUser(config, FakeResponse(200, SIGNED_UP))
        SignupOnlyUser.signup_only(user)

        assert user.request_names == ['sign-up']
        assert user.client.calls[0]['json']['username'].startswith('tango_')

    def test_login_only_uses_seeded_account(self, config):
        user = FakeUser(config, FakeResponse(200, TOKEN))
        LoginOnlyUser.login_only(user)

        assert user.request_names == ['login']
        assert user.client.calls[0]['json']['username'].startswith('tango_customer_')

    def test_view_cart_expects_empty_cart(self, config):
        cart = FakeResponse(200, EMPTY_CART)
        user = FakeUser(config, FakeResponse(200, SIGNED_UP), FakeResponse(200, TOKEN), cart)

        ViewCartUser.view_cart(user)

        assert user.request_names == ['sign-up', 'login', 'viewCart']
        assert user.client.calls[2]['json']['cookie'] == 'dGFuZ28='
        assert cart.failures == []

    def test_place_order_flow(self, config, monkeypatch):
        monkeypatch.setattr(workflows, 'pick_products', lambda products: products[:2])
        final_cart = FakeResponse(200, FULL_CART)
        user = FakeUser(
            config,
            FakeResponse(200, SIGNED_UP),
            FakeResponse(200, TOKEN),
            FakeResponse(200, EMPTY_CART),
            FakeResponse(200, ''),
            FakeResponse(200, ''),
            final_cart,
        )

        PlaceOrderUser.place_order(user)

        assert user.request_names == [
            'sign-up', 'login', 'viewCart', 'addToCart', 'addToCart', 'viewCart'
        ]
        assert [c['json']['prod_id'] for c in user.client.calls[3:5]] == [1, 2]
        assert final_cart.failures == []

    def test_cart_flow_stops_without_token(self, config):
        user = FakeUser(
            config,
            FakeResponse(200, SIGNED_UP),
            FakeResponse(200, '{"errorMessage": "Wrong password."}'),
        )

        PlaceOrderUser.place_order(user)

        assert user.request_names == ['sign-up', 'login']

    def test_smoke(self, config):
        user = FakeUser(
            config,
            FakeResponse(200, 'PRODUCT STORE'),
            FakeResponse(200, TOKEN),
        )

        SmokeUser.smoke(user)

        assert user.request_names == ['homepage', 'login']
        assert user.client.calls[0]['method'] == 'GET'


class TestDemoblazeUser:

    def test_requires_config(self):
        with pytest.raises(RuntimeError, match='RunConfig'):
            DemoblazeUser.on_start(SimpleNamespace(config=None))

    def test_think_time(self):
        waits = [DemoblazeUser.wait_time(None) for _ in range(20)]
        assert all(1 <= wait <= 3 for wait in waits)
