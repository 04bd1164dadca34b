"""Virtual user behaviors, one locust user class per scenario name.

The classes are abstract templates: scenarios.host derives concrete classes
from them with a resolved RunConfig, a host and a fixed user count taken
from the execution plan.

Usage:
    # Run a single behavior with every VU
    TEST_PROFILE=functional SCENARIO=signup_and_login \
        locust -f locustfile.py --headless
"""

import logging
from typing import Dict, List, Optional, Type

from locust import HttpUser, between, task

from settings.config import RunConfig

from . import api
from .models import Product, User
from .seed_data import generate_user, get_existing_user, load_products, pick_products

logger = logging.getLogger(__name__)


class DemoblazeUser(HttpUser):
    """Base class for all scenario behaviors.

    Think time between iterations is 1-3 seconds.
    """

    abstract = True
    wait_time = between(1, 3)

    # Set on the concrete subclasses built by scenarios.host
    config: Optional[RunConfig] = None
    scenario: str = ''

    def on_start(self):
        if self.config is None:
            raise RuntimeError(
                f"{type(self).__name__} has no RunConfig; build it with "
                "scenarios.host.build_user_classes()"
            )

    def new_user(self) -> User:
        return generate_user(self.config)

    def existing_user(self) -> User:
        return get_existing_user(self.config)

    def random_products(self) -> List[Product]:
        return pick_products(load_products(self.config.products_file))

    def login_new_user(self) -> Optional[str]:
        """Sign up and log in a fresh user; returns the token or None."""
        user = self.new_user()
        api.sign_up(self.client, self.config, user)
        return api.login(self.client, self.config, user)


class SignupOnlyUser(DemoblazeUser):
    """New users who abandon after signing up."""

    abstract = True
    scenario = 'signup_only'

    @task
    def signup_only(self):
        api.sign_up(self.client, self.config, self.new_user())


class LoginOnlyUser(DemoblazeUser):
    """Returning users logging in with a seeded account."""

    abstract = True
    scenario = 'login_only'

    @task
    def login_only(self):
        api.login(self.client, self.config, self.existing_user())


class SignupAndLoginUser(DemoblazeUser):
    """New users completing registration and logging in."""

    abstract = True
    scenario = 'signup_and_login'

    @task
    def signup_and_login(self):
        api.sign_up_and_login(self.client, self.config, self.new_user())


class AddToCartUser(DemoblazeUser):
    """Users adding 1-5 random products to their cart."""

    abstract = True
    scenario = 'add_to_cart'

    @task
    def add_to_cart(self):
        token = self.login_new_user()
        if token is None:
            return
        products = self.random_products()
        results = api.add_products_to_cart(self.client, self.config, products, token)
        logger.debug(f"Added {sum(results)}/{len(products)} products to cart")


class ViewCartUser(DemoblazeUser):
    """Users checking that a new account starts with an empty cart."""

    abstract = True
    scenario = 'view_cart'

    @task
    def view_cart(self):
        token = self.login_new_user()
        if token is None:
            return
        api.check_cart(self.client, self.config, token, expect_items=False)


class PlaceOrderUser(DemoblazeUser):
    """Full cart flow: empty cart, add products, cart has products."""

    abstract = True
    scenario = 'place_order'

    @task
    def place_order(self):
        token = self.login_new_user()
        if token is None:
            return
        api.check_cart(self.client, self.config, token, expect_items=False)
        products = self.random_products()
        results = api.add_products_to_cart(self.client, self.config, products, token)
        logger.debug(f"Added {sum(results)}/{len(products)} products to cart")
        api.check_cart(self.client, self.config, token, expect_items=True)


class SmokeUser(DemoblazeUser):
    """Quick check that the store is up and a seeded user can log in."""

    abstract = True
    scenario = 'smoke'

    @task
    def smoke(self):
        landing_ok = api.check_landing_page(self.client, self.config)
        token = api.login(
            self.client,
            self.config,
            self.existing_user(),
            max_response_time=api.SMOKE_MAX_RESPONSE_TIME
        )
        if landing_ok and token:
            logger.info("Smoke test passed")
        else:
            logger.warning("Smoke test failed")


SCENARIO_USERS: Dict[str, Type[DemoblazeUser]] = {
    cls.scenario: cls
    for cls in (
        SignupOnlyUser,
        LoginOnlyUser,
        SignupAndLoginUser,
        AddToCartUser,
        ViewCartUser,
        PlaceOrderUser,
        SmokeUser,
    )
}
