import unittest
from decimal import Decimal

from cost_itemizer.models.charges import ChargeItem
from cost_itemizer.services.pricing_service import (
    PriceType,
    _parse_decimal,
    parse_price_type,
    select_price,
)


def _item(**charge):
    return ChargeItem.model_validate({"description": "ITEM", "standard_charges": [charge]})


class PricingServiceTests(unittest.TestCase):
    # -----------------------------------------------------------------------
    # _parse_decimal
    # -----------------------------------------------------------------------
    def test_parse_decimal_integer(self):
        self.assertEqual(_parse_decimal("12000"), Decimal("12000"))

    def test_parse_decimal_european_separators(self):
        self.assertEqual(_parse_decimal("1.234,56"), Decimal("1234.56"))

    def test_parse_decimal_us_separators_and_dollar_sign(self):
        self.assertEqual(_parse_decimal("$1,234.56"), Decimal("1234.56"))

    def test_parse_decimal_native_float(self):
        self.assertEqual(_parse_decimal(9500.75), Decimal("9500.75"))

    def test_parse_decimal_none_and_bool(self):
        self.assertIsNone(_parse_decimal(None))
        self.assertIsNone(_parse_decimal(True))

    def test_parse_decimal_invalid(self):
        self.assertIsNone(_parse_decimal("N/A"))
        self.assertIsNone(_parse_decimal(""))

    def test_parse_decimal_non_finite(self):
        self.assertIsNone(_parse_decimal("NaN"))
        self.assertIsNone(_parse_decimal("Infinity"))

    # -----------------------------------------------------------------------
    # parse_price_type
    # -----------------------------------------------------------------------
    def test_parse_price_type_default(self):
        self.assertIs(parse_price_type(None), PriceType.GROSS_CHARGE)

    def test_parse_price_type_discounted(self):
        self.assertIs(parse_price_type("discounted_cash"), PriceType.DISCOUNTED_CASH)

    def test_parse_price_type_unknown(self):
        with self.assertRaises(ValueError):
            parse_price_type("negotiated")

    # -----------------------------------------------------------------------
    # select_price: gross charge
    # -----------------------------------------------------------------------
    def test_gross_charge(self):
        self.assertEqual(select_price(_item(gross_charge=120.5, minimum=80)), Decimal("120.5"))

    def test_gross_falls_back_to_minimum(self):
        self.assertEqual(select_price(_item(minimum=80)), Decimal("80"))

    def test_zero_gross_falls_back_to_minimum(self):
        self.assertEqual(select_price(_item(gross_charge=0, minimum=80)), Decimal("80"))

    # -----------------------------------------------------------------------
    # select_price: discounted cash
    # -----------------------------------------------------------------------
    def test_discounted_cash(self):
        item = _item(gross_charge=100, discounted_cash=60)
        self.assertEqual(select_price(item, PriceType.DISCOUNTED_CASH), Decimal("60"))

    def test_discounted_falls_back_to_share_of_gross(self):
        item = _item(gross_charge=100)
        self.assertEqual(select_price(item, PriceType.DISCOUNTED_CASH), Decimal("40"))

    def test_discounted_ignores_minimum(self):
        item = _item(minimum=80)
        self.assertEqual(select_price(item, PriceType.DISCOUNTED_CASH), Decimal("0"))

    # -----------------------------------------------------------------------
    # select_price: nothing resolves
    # -----------------------------------------------------------------------
    def test_no_prices_is_zero(self):
        self.assertEqual(select_price(_item()), Decimal("0"))

    def test_no_standard_charges_is_zero(self):
        item = ChargeItem.model_validate({"description": "ITEM"})
        self.assertEqual(select_price(item, PriceType.DISCOUNTED_CASH), Decimal("0"))

    def test_only_first_charge_is_read(self):
        item = ChargeItem.model_validate({
            "description": "ITEM",
            "standard_charges": [{"minimum": 5}, {"gross_charge": 999}],
        })
        self.assertEqual(select_price(item), Decimal("5"))


if __name__ == "__main__":
    unittest.main()
