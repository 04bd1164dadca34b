"""Seeded users and products loaded from the data/ directory."""

import json
import logging
import random
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from settings.config import RunConfig

from .models import Product, User

logger = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def _read_json(path: str) -> dict:
    data_path = Path(path)
    if not data_path.exists():
        raise FileNotFoundError(f"Test data file not found: {data_path}")
    with open(data_path) as f:
        return json.load(f)


def load_users(path: str, category: str = 'customer') -> List[User]:
    """All seeded users in a category."""
    users = _read_json(path).get('users', {}).get(category) or []
    if not users:
        raise LookupError(f"No users found in category: {category}")
    return [User.from_dict(dict(u, category=category)) for u in users]


def load_products(path: str) -> List[Product]:
    """All seeded catalogue products."""
    products = _read_json(path).get('products') or []
    if not products:
        raise LookupError("No products found in test data")
    return [Product.from_dict(p) for p in products]


def get_existing_user(
    config: RunConfig,
    category: str = 'customer',
    index: Optional[int] = None
) -> User:
    """A seeded user; random unless index is given."""
    users = load_users(config.users_file, category)
    if index is None:
        return random.choice(users)
    if not 0 <= index < len(users):
        raise LookupError(f"User not found at index {index} in category: {category}")
    return users[index]


def generate_user(config: RunConfig, category: str = 'customer') -> User:
    """A brand new user with a unique username."""
    return User.create_random(
        category=category,
        username_prefix=config.username_prefix,
        password=config.password
    )


def pick_products(
    products: List[Product],
    min_products: int = 1,
    max_products: int = 5
) -> List[Product]:
    """Pick a random number of distinct products.

    Duplicates are only allowed once every product has been used.
    """
    count = random.randint(min_products, max_products)
    picked = random.sample(products, min(count, len(products)))
    while len(picked) < count:
        picked.append(random.choice(products))
    return picked
