import unittest
from decimal import Decimal

from cost_itemizer.models.charges import ChargeItem
from cost_itemizer.services.drug_parser import parse
from cost_itemizer.services.unit_pricing import (
    ByCountUnitPrice,
    ByMassUnitPrice,
    PlainUnitPrice,
    calculate_unit_price,
    resolve_package,
    unit_price_headline,
)


def _item(description, unit=None, type_=None, with_drug_info=True):
    data = {"description": description}
    if with_drug_info:
        data["drug_information"] = {"unit": unit, "type": type_}
    return ChargeItem.model_validate(data)


class CalculateUnitPriceTests(unittest.TestCase):
    # -----------------------------------------------------------------------
    # Branch 1: concentration packaged by volume
    # -----------------------------------------------------------------------
    def test_concentration_vial_priced_by_mass(self):
        item = _item("INSULIN GLARGINE INJ 100 UNITS/ML", 10, "ML")
        result = calculate_unit_price(item, Decimal("50"))
        self.assertIsInstance(result, ByMassUnitPrice)
        self.assertEqual(result.kind, "by_mass")
        self.assertEqual(result.price_per_ml, Decimal("5"))
        self.assertEqual(result.total_dose, Decimal("1000"))
        self.assertEqual(result.price_per_mg, Decimal("0.05"))
        self.assertEqual(result.dose_unit, "UNITS")
        self.assertEqual(result.package_info, "10 ML")

    def test_liter_package_is_converted_to_ml(self):
        item = _item("HEPARIN 2 UNITS/ML IV SOLN", 1, "L")
        result = calculate_unit_price(item, 20)
        self.assertIsInstance(result, ByMassUnitPrice)
        self.assertEqual(result.price_per_ml, Decimal("0.02"))
        self.assertEqual(result.total_dose, Decimal("2000"))
        self.assertEqual(result.price_per_mg, Decimal("0.01"))
        self.assertEqual(result.package_info, "1 L")

    def test_denominator_divides_the_strength(self):
        item = _item("ACETAMINOPHEN 325 MG/10ML SOLN PO", 100, "ML")
        result = calculate_unit_price(item, Decimal("13"))
        self.assertEqual(result.total_dose, Decimal("3250"))
        self.assertEqual(result.price_per_mg, Decimal("0.004"))

    # -----------------------------------------------------------------------
    # Branch 2: discrete units
    # -----------------------------------------------------------------------
    def test_tablet_bottle_priced_by_count(self):
        item = _item("METOPROLOL TARTRATE TAB 25 MG", 30, "EA")
        result = calculate_unit_price(item, Decimal("15"))
        self.assertIsInstance(result, ByCountUnitPrice)
        self.assertEqual(result.total_dose, Decimal("750"))
        self.assertEqual(result.price_per_unit, Decimal("0.5"))
        self.assertEqual(result.price_per_mg, Decimal("0.02"))
        self.assertEqual(result.dose_unit, "MG")
        self.assertEqual(result.package_info, "30 Tablet")
        self.assertEqual(result.strength_per_unit, "25 MG")

    def test_tablet_form_with_non_ea_package(self):
        item = _item("AMOXICILLIN CAPS 500 MG", 20, "BOX")
        result = calculate_unit_price(item, Decimal("10"))
        self.assertIsInstance(result, ByCountUnitPrice)
        self.assertEqual(result.package_info, "20 Capsule")

    def test_ea_package_without_form_uses_package_type(self):
        item = _item("ONDANSETRON 4 MG", 10, "EA")
        result = calculate_unit_price(item, Decimal("5"))
        self.assertIsInstance(result, ByCountUnitPrice)
        self.assertEqual(result.package_info, "10 EA")

    def test_concentration_packaged_as_each_takes_count_branch(self):
        item = _item("ENOXAPARIN 40 MG/0.4ML INJ", 1, "EA")
        result = calculate_unit_price(item, Decimal("20"))
        self.assertIsInstance(result, ByCountUnitPrice)
        self.assertEqual(result.total_dose, Decimal("40"))
        self.assertEqual(result.price_per_mg, Decimal("0.5"))

    def test_zero_total_dose_has_no_price_per_mg(self):
        item = _item("PLACEBO TAB 0 MG", 30, "EA")
        result = calculate_unit_price(item, Decimal("9"))
        self.assertIsInstance(result, ByCountUnitPrice)
        self.assertEqual(result.total_dose, Decimal("0"))
        self.assertIsNone(result.price_per_mg)

    # -----------------------------------------------------------------------
    # Branch 3: plain
    # -----------------------------------------------------------------------
    def test_no_strength_falls_back_to_plain(self):
        item = _item("GAUZE PAD STERILE", 4, "EA")
        result = calculate_unit_price(item, Decimal("8"))
        self.assertIsInstance(result, PlainUnitPrice)
        self.assertEqual(result.price_per_unit, Decimal("2"))
        self.assertEqual(result.package_info, "4 EA")

    def test_flat_strength_in_volume_package_is_plain(self):
        item = _item("SODIUM CHLORIDE 0.9% IV", 1000, "ML")
        result = calculate_unit_price(item, Decimal("25"))
        self.assertIsInstance(result, PlainUnitPrice)
        self.assertEqual(result.price_per_unit, Decimal("0.025"))

    def test_empty_drug_information_applies_defaults(self):
        item = ChargeItem.model_validate({"description": "BANDAGE ROLL", "drug_information": {}})
        result = calculate_unit_price(item, Decimal("3.5"))
        self.assertIsInstance(result, PlainUnitPrice)
        self.assertEqual(result.price_per_unit, Decimal("3.5"))
        self.assertEqual(result.package_info, "1 EA")

    # -----------------------------------------------------------------------
    # Absent results
    # -----------------------------------------------------------------------
    def test_zero_price_returns_none(self):
        item = _item("METOPROLOL TARTRATE TAB 25 MG", 30, "EA")
        self.assertIsNone(calculate_unit_price(item, 0))

    def test_missing_price_returns_none(self):
        item = _item("METOPROLOL TARTRATE TAB 25 MG", 30, "EA")
        self.assertIsNone(calculate_unit_price(item, None))

    def test_missing_drug_information_returns_none(self):
        item = _item("METOPROLOL TARTRATE TAB 25 MG", with_drug_info=False)
        self.assertIsNone(calculate_unit_price(item, Decimal("15")))

    # -----------------------------------------------------------------------
    # Inputs
    # -----------------------------------------------------------------------
    def test_accepts_plain_dict_and_string_values(self):
        raw = {
            "description": "METOPROLOL TARTRATE TAB 25 MG",
            "drug_information": {"unit": "30", "type": "ea"},
        }
        result = calculate_unit_price(raw, "15")
        self.assertIsInstance(result, ByCountUnitPrice)
        self.assertEqual(result.price_per_unit, Decimal("0.5"))

    def test_uses_supplied_parse_result(self):
        item = _item("UNPARSEABLE LINE", 10, "ML")
        parsed = parse("INSULIN GLARGINE INJ 100 UNITS/ML")
        result = calculate_unit_price(item, Decimal("50"), parsed=parsed)
        self.assertIsInstance(result, ByMassUnitPrice)

    def test_float_price_is_accepted(self):
        item = _item("GAUZE PAD STERILE", 2, "EA")
        result = calculate_unit_price(item, 7.5)
        self.assertEqual(result.price_per_unit, Decimal("3.75"))


class ResolvePackageTests(unittest.TestCase):
    def test_no_drug_information(self):
        self.assertIsNone(resolve_package(_item("X", with_drug_info=False)))

    def test_numeric_prefix_quantity(self):
        package = resolve_package(_item("X", "10 ML", "ml"))
        self.assertEqual(package.quantity, Decimal("10"))
        self.assertEqual(package.type, "ML")

    def test_non_numeric_quantity_defaults_to_one(self):
        self.assertEqual(resolve_package(_item("X", "each", "EA")).quantity, Decimal("1"))

    def test_non_positive_quantity_defaults_to_one(self):
        self.assertEqual(resolve_package(_item("X", -5, "EA")).quantity, Decimal("1"))

    def test_missing_type_defaults_to_ea(self):
        self.assertEqual(resolve_package(_item("X", 3, None)).type, "EA")


class UnitPriceHeadlineTests(unittest.TestCase):
    def test_headline_prefers_per_mg(self):
        item = _item("INSULIN GLARGINE INJ 100 UNITS/ML", 10, "ML")
        headline = unit_price_headline(calculate_unit_price(item, Decimal("50")))
        self.assertEqual(headline, (Decimal("0.05"), "/mg"))

    def test_headline_falls_back_to_per_each(self):
        item = _item("GAUZE PAD STERILE", 4, "EA")
        headline = unit_price_headline(calculate_unit_price(item, Decimal("8")))
        self.assertEqual(headline, (Decimal("2"), "/ea"))

    def test_headline_none_for_none(self):
        self.assertIsNone(unit_price_headline(None))


if __name__ == "__main__":
    unittest.main()
