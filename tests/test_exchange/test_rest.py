"""Tests for the shared REST adapter base and its Decimal helpers."""

from decimal import Decimal

import pytest

from fundscan.exchange.rest import (
    RestExchangeAdapter,
    mid_price,
    positive_or_none,
    to_decimal,
)


class TestHelpers:
    @pytest.mark.parametrize("raw", [None, "", "abc", "NaN", "Infinity"])
    def test_to_decimal_default(self, raw) -> None:
        assert to_decimal(raw, Decimal("0")) == Decimal("0")

    def test_to_decimal_number(self) -> None:
        assert to_decimal(0.25) == Decimal("0.25")

    def test_positive_or_none(self) -> None:
        assert positive_or_none("0") is None
        assert positive_or_none("-1") is None
        assert positive_or_none("1.5") == Decimal("1.5")

    def test_mid_price_fallbacks(self) -> None:
        assert mid_price(Decimal("1"), Decimal("3"), Decimal("9")) == Decimal("2")
        assert mid_price(None, Decimal("3"), Decimal("9")) == Decimal("9")
        assert mid_price(None, None, None) == Decimal("0")


class TestRestExchangeAdapter:
    def test_token_listing_hook_is_required(self) -> None:
        class Incomplete(RestExchangeAdapter):
            name = "Incomplete"

            async def get_snapshot(self, token):
                raise NotImplementedError

        with pytest.raises(TypeError):
            Incomplete("https://incomplete.test")
