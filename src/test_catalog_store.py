import json
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import patch

from cost_itemizer.core.catalog_store import CatalogLoadError, get_catalog, load_catalog

SAMPLE = {
    "hospital_name": "General Hospital",
    "hospital_address": ["1 Main St, Springfield"],
    "last_updated_on": "2024-07-01",
    "version": "2.0.0",
    "standard_charge_information": [
        {
            "description": "METOPROLOL TARTRATE TAB 25 MG",
            "drug_information": {"unit": "30", "type": "EA"},
            "code_information": [{"code": 250001, "type": "CDM"}],
            "standard_charges": [{"gross_charge": 15.0, "setting": "both"}],
        }
    ],
}


class CatalogStoreTests(unittest.TestCase):
    def setUp(self):
        self._tmp = TemporaryDirectory()
        self.path = Path(self._tmp.name) / "charges.json"
        self.path.write_text(json.dumps(SAMPLE), encoding="utf-8")
        get_catalog.cache_clear()

    def tearDown(self):
        get_catalog.cache_clear()
        self._tmp.cleanup()

    def test_load_catalog(self):
        catalog = load_catalog(self.path)
        self.assertEqual(catalog.hospital_name, "General Hospital")
        self.assertEqual(len(catalog.standard_charge_information), 1)
        item = catalog.standard_charge_information[0]
        self.assertEqual(item.code_information[0].code, "250001")
        self.assertEqual(item.standard_charges[0].gross_charge, 15.0)

    def test_missing_file(self):
        with self.assertRaises(CatalogLoadError):
            load_catalog(Path(self._tmp.name) / "missing.json")

    def test_invalid_json(self):
        self.path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(CatalogLoadError):
            load_catalog(self.path)

    def test_wrong_shape(self):
        self.path.write_text(json.dumps({"standard_charge_information": "nope"}), encoding="utf-8")
        with self.assertRaises(CatalogLoadError):
            load_catalog(self.path)

    def test_get_catalog_is_cached(self):
        with patch("cost_itemizer.core.catalog_store.CHARGES_DATA_PATH", str(self.path)):
            first = get_catalog()
            self.path.unlink()
            self.assertIs(get_catalog(), first)


if __name__ == "__main__":
    unittest.main()
