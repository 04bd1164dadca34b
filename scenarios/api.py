"""Demoblaze API calls and their response checks.

Every call goes through the host's HTTP client (locust's HttpSession) with
catch_response=True, so a failed check is reported as a request failure
rather than raised.
"""

import json
import logging
import uuid
from typing import Iterable, List, Optional

from settings.config import RunConfig
from settings.constants import CONTENT_TYPE_JSON, HTTP_OK

from .models import Product, User

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": CONTENT_TYPE_JSON}

TOKEN_MARKER = "Auth_token: "

# Response time budget for smoke checks, in seconds
SMOKE_MAX_RESPONSE_TIME = 2.0


def get_token(body: str) -> str:
    """Extract the auth token from a login response body.

    The API answers with a JSON string such as "Auth_token: abc123".

    Raises:
        ValueError: body carries no token
    """
    if not body or TOKEN_MARKER not in body:
        raise ValueError("Login response has no Auth_token")
    token = body.split(TOKEN_MARKER, 1)[1]
    token = token.strip().replace('\\"', '').replace('\n', '')
    return token.rstrip('"').strip()


def _cart_items(body: str) -> Optional[list]:
    try:
        items = json.loads(body).get('Items')
    except (ValueError, AttributeError):
        return None
    return items if isinstance(items, list) else None


def sign_up(client, config: RunConfig, user: User, name: str = "sign-up") -> bool:
    """Register a user. Passes on status 200 with an empty JSON string body."""
    with client.post(
        config.api_url('SIGN_UP'),
        json=user.to_payload(),
        headers=JSON_HEADERS,
        name=name,
        catch_response=True
    ) as response:
        if response.status_code != HTTP_OK:
            response.failure(f"{name} failed with status {response.status_code}")
            return False
        if response.text.strip() != '""':
            response.failure(f"{name} returned unexpected body: {response.text[:200]}")
            return False
        return True


def login(
    client,
    config: RunConfig,
    user: User,
    name: str = "login",
    max_response_time: Optional[float] = None
) -> Optional[str]:
    """Log a user in.

    Args:
        max_response_time: Fail the check when slower than this, in seconds

    Returns:
        The auth token, or None when the login check failed
    """
    with client.post(
        config.api_url('LOGIN'),
        json=user.to_payload(),
        headers=JSON_HEADERS,
        name=name,
        catch_response=True
    ) as response:
        if response.status_code != HTTP_OK:
            response.failure(f"{name} failed with status {response.status_code}")
            return None
        try:
            token = get_token(response.text)
        except ValueError:
            response.failure(f"{name} response has no Auth_token")
            return None
        elapsed = response.elapsed.total_seconds()
        if max_response_time is not None and elapsed >= max_response_time:
            response.failure(f"{name} took {elapsed:.2f}s (limit {max_response_time}s)")
            return None
        return token


def sign_up_and_login(client, config: RunConfig, user: User) -> Optional[str]:
    """Register then log in the same user. Returns the token or None."""
    if not sign_up(client, config, user):
        logger.debug(f"Signup failed for {user.username}, trying login anyway")
    return login(client, config, user)


def add_to_cart(
    client,
    config: RunConfig,
    product: Product,
    token: str,
    name: str = "addToCart"
) -> bool:
    """Add one product to the token's cart. Passes on 200 with empty body."""
    payload = {
        'id': str(uuid.uuid4()),
        'cookie': token,
        'prod_id': product.id,
        'flag': True,
    }
    with client.post(
        config.api_url('ADD_TO_CART'),
        json=payload,
        headers=JSON_HEADERS,
        name=name,
        catch_response=True
    ) as response:
        if response.status_code != HTTP_OK:
            response.failure(f"{name} failed with status {response.status_code}")
            return False
        if response.text.strip():
            response.failure(f"{name} returned unexpected body: {response.text[:200]}")
            return False
        return True


def add_products_to_cart(
    client,
    config: RunConfig,
    products: Iterable[Product],
    token: str,
    name: str = "addToCart"
) -> List[bool]:
    """Add several products, one request each."""
    return [
        add_to_cart(client, config, product, token, name=name)
        for product in products
    ]


def check_cart(
    client,
    config: RunConfig,
    token: str,
    expect_items: bool,
    name: str = "viewCart"
) -> bool:
    """View the cart and check whether it holds items.

    Args:
        expect_items: True to require a non-empty cart, False for empty
    """
    with client.post(
        config.api_url('VIEW_CART'),
        json={'cookie': token, 'flag': True},
        headers=JSON_HEADERS,
        name=name,
        catch_response=True
    ) as response:
        if response.status_code != HTTP_OK:
            response.failure(f"{name} failed with status {response.status_code}")
            return False
        items = _cart_items(response.text)
        if items is None:
            response.failure(f"{name} response is not a cart: {response.text[:200]}")
            return False
        if expect_items and not items:
            response.failure(f"{name} expected products in cart, got none")
            return False
        if not expect_items and items:
            response.failure(f"{name} expected empty cart, got {len(items)} items")
            return False
        return True


def check_landing_page(client, config: RunConfig, name: str = "homepage") -> bool:
    """Landing page loads, shows the store and answers within budget."""
    with client.get(
        config.web_page_url('LANDING'),
        name=name,
        catch_response=True
    ) as response:
        if response.status_code != HTTP_OK:
            response.failure(f"{name} failed with status {response.status_code}")
            return False
        if "PRODUCT STORE" not in response.text:
            response.failure(f"{name} does not contain PRODUCT STORE")
            return False
        if response.elapsed.total_seconds() >= SMOKE_MAX_RESPONSE_TIME:
            response.failure(
                f"{name} took {response.elapsed.total_seconds():.2f}s "
                f"(limit {SMOKE_MAX_RESPONSE_TIME}s)"
            )
            return False
        return True
