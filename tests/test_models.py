"""
Tests for the User and Product models and the seed data loaders.
"""
from dataclasses import replace

import pytest

from scenarios.models import Product, User, find_product, random_string
from scenarios.seed_data import (
    generate_user,
    get_existing_user,
    load_products,
    load_users,
    pick_products,
)


class TestUser:

    def test_payload_has_only_credentials(self):
        user = User('tango_user', 'MTIzNDU2', category='admin')
        assert user.to_payload() == {'username': 'tango_user', 'password': 'MTIzNDU2'}

    def test_created_at_is_utc(self):
        assert User('tango_user', 'MTIzNDU2').created_at.endswith('+00:00')

    def test_username_is_stripped(self):
        assert User('  tango_user  ', 'pw').username == 'tango_user'

    @pytest.mark.parametrize('username', ['', 'ab', 'x' * 51, None])
    def test_invalid_username(self, username):
        with pytest.raises(ValueError):
            User(username, 'pw')

    def test_empty_password(self):
        with pytest.raises(ValueError, match='Password'):
            User('tango_user', '')

    def test_unknown_category(self):
        with pytest.raises(ValueError, match='Category'):
            User('tango_user', 'pw', category='superuser')

    def test_create_random_is_unique(self):
        first = User.create_random(username_prefix='load_', password='secret')
        second = User.create_random(username_prefix='load_', password='secret')

        assert first.username.startswith('load_')
        assert first.password == 'secret'
        assert first.username != second.username
        assert len(first.username) <= 50

    def test_random_string(self):
        value = random_string(12)
        assert len(value) == 12
        assert value.isalnum()


class TestProduct:

    def test_id_is_coerced(self):
        assert Product('3', 'Nexus 6', 'A phone').id == 3

    @pytest.mark.parametrize('product_id', [0, -1, 'abc', None])
    def test_invalid_id(self, product_id):
        with pytest.raises(ValueError, match='Product ID'):
            Product(product_id, 'Nexus 6', 'A phone')

    def test_blank_name(self):
        with pytest.raises(ValueError, match='name'):
            Product(1, '   ', 'A phone')

    def test_matches(self):
        product = Product(1, 'Samsung galaxy s6', 'Powered by Exynos')
        assert product.matches('GALAXY')
        assert product.matches('exynos')
        assert not product.matches('nokia')

    def test_find_product(self):
        products = [Product(1, 'A phone', 'desc'), Product(2, 'B phone', 'desc')]
        assert find_product(products, 2).name == 'B phone'
        assert find_product(products, '1').name == 'A phone'
        assert find_product(products, 9) is None


class TestSeedData:
    """Loading seeded users and products from JSON"""

    def test_load_users(self, users_file):
        users = load_users(users_file)
        assert [u.username for u in users] == ['seed_customer_1', 'seed_customer_2']
        assert all(u.category == 'customer' for u in users)

    def test_empty_category(self, users_file):
        with pytest.raises(LookupError, match='admin'):
            load_users(users_file, 'admin')

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_users(str(tmp_path / 'none.json'))

    def test_existing_user_by_index(self, config, users_file):
        config = replace(config, users_file=users_file)

        assert get_existing_user(config, index=1).username == 'seed_customer_2'
        with pytest.raises(LookupError):
            get_existing_user(config, index=5)

    def test_random_existing_user(self, config, users_file):
        config = replace(config, users_file=users_file)
        assert get_existing_user(config).username.startswith('seed_customer_')

    def test_generate_user_uses_config(self, config):
        user = generate_user(config)
        assert user.username.startswith(config.username_prefix)
        assert user.password == config.password

    def test_shipped_data_files(self, config):
        assert len(load_users(config.users_file)) >= 1
        assert len(load_products(config.products_file)) == 10


class TestPickProducts:

    def test_distinct_when_possible(self, products_file):
        products = load_products(products_file)
        for _ in range(20):
            picked = pick_products(products, 1, 3)
            assert 1 <= len(picked) <= 3
            assert len({p.id for p in picked}) == len(picked)

    def test_repeats_only_after_all_used(self, products_file):
        products = load_products(products_file)
        picked = pick_products(products, 5, 5)

        assert len(picked) == 5
        assert {p.id for p in picked} == {1, 2, 3}
