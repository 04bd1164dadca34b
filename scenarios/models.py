"""Test data models for users and products."""

import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from settings.constants import USER_CATEGORIES


def random_string(length: int = 8) -> str:
    """Random lowercase alphanumeric string."""
    return ''.join(
        random.choices(string.ascii_lowercase + string.digits, k=length)
    )


@dataclass
class User:
    """A Demoblaze account used by the scenarios.

    Only username and password are sent to the API; the rest is local
    bookkeeping.
    """
    username: str
    password: str
    category: str = 'customer'
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    is_active: bool = True

    def __post_init__(self):
        if not self.username or not isinstance(self.username, str):
            raise ValueError("Username must be a non-empty string")
        self.username = self.username.strip()
        if len(self.username) < 3:
            raise ValueError("Username must be at least 3 characters long")
        if len(self.username) > 50:
            raise ValueError("Username must be no more than 50 characters long")
        if not self.password or not isinstance(self.password, str):
            raise ValueError("Password must be a non-empty string")
        if self.category not in USER_CATEGORIES:
            raise ValueError(
                f"Category must be one of: {', '.join(USER_CATEGORIES)}"
            )

    def to_payload(self) -> Dict[str, str]:
        """Request body for signup and login."""
        return {'username': self.username, 'password': self.password}

    @property
    def display_name(self) -> str:
        return f"{self.username} ({self.category})"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            username=data.get('username'),
            password=data.get('password'),
            category=data.get('category', 'customer')
        )

    @classmethod
    def create_random(
        cls,
        category: str = 'customer',
        username_prefix: str = 'tango_',
        password: str = 'MTIzNDU2'
    ) -> "User":
        """Fresh user with a unique username: prefix + random + millis."""
        username = f"{username_prefix}{random_string(8)}_{int(time.time() * 1000)}"
        return cls(username=username, password=password, category=category)


@dataclass
class Product:
    """A catalogue product that can be added to a cart."""
    id: int
    name: str
    desc: str

    def __post_init__(self):
        try:
            product_id = int(self.id)
        except (TypeError, ValueError):
            raise ValueError("Product ID must be a valid number")
        if product_id <= 0:
            raise ValueError("Product ID must be a positive number")
        self.id = product_id

        if not self.name or not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("Product name must be a non-empty string")
        if len(self.name) > 200:
            raise ValueError("Product name must be no more than 200 characters long")
        self.name = self.name.strip()

        if not self.desc or not isinstance(self.desc, str) or not self.desc.strip():
            raise ValueError("Product description must be a non-empty string")
        if len(self.desc) > 1000:
            raise ValueError(
                "Product description must be no more than 1000 characters long"
            )
        self.desc = self.desc.strip()

    def matches(self, term: str) -> bool:
        """Case-insensitive match against name or description."""
        term = term.lower()
        return term in self.name.lower() or term in self.desc.lower()

    @property
    def display_name(self) -> str:
        return f"{self.name} (ID: {self.id})"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        return cls(id=data.get('id'), name=data.get('name'), desc=data.get('desc'))


def find_product(products: List[Product], product_id: int) -> Optional[Product]:
    """Look up a product by ID."""
    for product in products:
        if product.id == int(product_id):
            return product
    return None
