"""Unit tests for domain value objects."""

import pytest

from tms.domain.exceptions import ValidationError
from tms.domain.model.value_objects import Direction, Quantity, StockKey


class TestQuantity:

    def test_positive(self):
        assert Quantity(5).value == 5

    def test_zero_rejected(self):
        with pytest.raises(ValidationError, match="must be positive"):
            Quantity(0)

    def test_negative_rejected(self):
        with pytest.raises(ValidationError, match="must be positive"):
            Quantity(-1)

    def test_non_integer_rejected(self):
        with pytest.raises(ValidationError, match="must be an integer"):
            Quantity(2.5)

    def test_bool_rejected(self):
        with pytest.raises(ValidationError, match="must be an integer"):
            Quantity(True)


class TestStockKey:

    def test_equality_by_value(self):
        assert StockKey("A", "P") == StockKey("A", "P", None)
        assert StockKey("A", "P", "L1") != StockKey("A", "P", "L2")

    def test_hashable(self):
        assert len({StockKey("A", "P"), StockKey("A", "P")}) == 1

    def test_blank_location_rejected(self):
        with pytest.raises(ValidationError, match="Location ID"):
            StockKey(" ", "P")

    def test_blank_product_rejected(self):
        with pytest.raises(ValidationError, match="Product ID"):
            StockKey("A", "")

    def test_str(self):
        assert str(StockKey("A", "P")) == "A:P"
        assert str(StockKey("A", "P", "L1")) == "A:P/L1"


class TestDirection:

    def test_sign(self):
        assert Direction.IN.sign == 1
        assert Direction.OUT.sign == -1
