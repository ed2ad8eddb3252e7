"""
tests/test_inventory.py — Tests for user-driven stock operations.
"""

import pytest

from conftest import add_stock_item
from errors import ValidationError, NotFoundError, InsufficientStockError
from inventory import create_stock_item, use_stock, add_stock, delete_stock_item, search_stock


class TestCreate:

    def test_create_item(self, ctx, temp_db):
        item = create_stock_item(ctx, 'Urea', '25.5', 'kg')
        assert item.name == 'Urea'
        assert item.remaining == 25.5
        assert item.used == 0.0
        assert item.unit == 'kg'

    def test_name_unique_ignoring_case(self, ctx, temp_db):
        create_stock_item(ctx, 'Urea', 10, 'kg')
        with pytest.raises(ValidationError) as exc:
            create_stock_item(ctx, '  UREA ', 5, 'kg')
        assert 'already exists' in exc.value.message

    @pytest.mark.parametrize('name,remaining,unit', [
        ('', 10, 'kg'),
        ('Urea', None, 'kg'),
        ('Urea', 'ten', 'kg'),
        ('Urea', 10, ''),
    ])
    def test_all_fields_required(self, ctx, temp_db, name, remaining, unit):
        with pytest.raises(ValidationError):
            create_stock_item(ctx, name, remaining, unit)

    def test_negative_rejected(self, ctx, temp_db):
        with pytest.raises(ValidationError):
            create_stock_item(ctx, 'Urea', -1, 'kg')


class TestUse:

    def test_use_moves_quantity_to_used(self, ctx, temp_db):
        item_id = add_stock_item('Urea', 10.0)
        item = use_stock(ctx, item_id, '2.5')
        assert (item.remaining, item.used) == (7.5, 2.5)

    def test_use_more_than_remaining(self, ctx, temp_db):
        item_id = add_stock_item('Urea', 1.0)
        with pytest.raises(InsufficientStockError) as exc:
            use_stock(ctx, item_id, '1.5')
        assert exc.value.message == "Not enough remaining."

    def test_using_everything_deletes_item(self, ctx, temp_db):
        item_id = add_stock_item('Urea', 2.0)
        assert use_stock(ctx, item_id, '2') is None
        assert search_stock(ctx) == []

    @pytest.mark.parametrize('value', ['0', '-1', '1.25', 'abc', ''])
    def test_invalid_amount(self, ctx, temp_db, value):
        item_id = add_stock_item('Urea', 10.0)
        with pytest.raises(ValidationError):
            use_stock(ctx, item_id, value)

    def test_unknown_item(self, ctx, temp_db):
        with pytest.raises(NotFoundError):
            use_stock(ctx, 999, '1')


def test_add_stock(ctx, temp_db):
    item_id = add_stock_item('Potash', 3.0, used=2.0)
    item = add_stock(ctx, item_id, '1.5')
    assert (item.remaining, item.used) == (4.5, 2.0)


def test_delete_stock_item(ctx, temp_db):
    item_id = add_stock_item('Potash', 3.0)
    delete_stock_item(ctx, item_id)
    with pytest.raises(NotFoundError):
        delete_stock_item(ctx, item_id)


def test_search_newest_first(ctx, temp_db):
    add_stock_item('Urea', 1.0)
    add_stock_item('Potash', 1.0)
    add_stock_item('Urea Granules', 1.0)

    assert [i.name for i in search_stock(ctx)] == ['Urea Granules', 'Potash', 'Urea']
    assert [i.name for i in search_stock(ctx, 'urea')] == ['Urea Granules', 'Urea']
