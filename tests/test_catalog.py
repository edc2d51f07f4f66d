import json
import os
import tempfile
import unittest

from mixcalc.catalog import BUILTIN_SUBSTANCES, StaticCatalog, default_catalog
from mixcalc.errors import InvalidInputError, UnknownSubstanceError
from mixcalc.models import Substance


class TestStaticCatalog(unittest.TestCase):
    def setUp(self):
        self.catalog = default_catalog()

    def test_builtin_table(self):
        self.assertEqual(len(self.catalog), len(BUILTIN_SUBSTANCES))
        self.assertEqual(len(self.catalog), 17)
        self.assertIn("water", self.catalog)
        self.assertNotIn("vodka", self.catalog)

    def test_default_catalog_is_shared(self):
        self.assertIs(default_catalog(), self.catalog)

    def test_unknown_substance(self):
        with self.assertRaises(UnknownSubstanceError) as ctx:
            self.catalog.get("unobtainium")
        self.assertEqual(ctx.exception.substance_id, "unobtainium")
        # callers that only know about ValueError still catch it
        self.assertIsInstance(ctx.exception, ValueError)

    def test_conjugates(self):
        self.assertEqual(self.catalog.conjugate_acids("sodium-citrate"), ("citric-acid",))
        self.assertEqual(self.catalog.conjugate_acids("sucrose"), ())
        self.assertEqual(self.catalog.conjugate_acids("unobtainium"), ())
        self.assertEqual(self.catalog.conjugate_bases("citric-acid"), ("sodium-citrate",))
        self.assertEqual(self.catalog.conjugate_bases("lactic-acid"), ())

    def test_duplicate_ids_rejected(self):
        water = Substance("water", "Water", 1.0, 18.015)
        with self.assertRaises(InvalidInputError):
            StaticCatalog([water, water])

    def test_unknown_conjugate_rejected(self):
        salt = Substance("sodium-foo", "Sodium foo", 1.5, 100.0, conjugate_acid="foo-acid")
        with self.assertRaises(InvalidInputError):
            StaticCatalog([salt])

    def test_component(self):
        component = self.catalog.component("citric-acid")
        self.assertEqual(component.substance_id, "citric-acid")
        self.assertEqual(component.pka, (3.13, 4.76, 6.40))
        self.assertTrue(component.is_valid)


class TestCatalogFromJson(unittest.TestCase):
    records = [
        {"id": "water", "pure_density": 1.0, "molecular_mass": 18.015},
        {
            "id": "vinegar-acid",
            "name": "Vinegar acid",
            "pure_density": 1.05,
            "molecular_mass": 60.05,
            "pka": [4.76],
        },
        {
            "id": "vinegar-salt",
            "pure_density": 1.5,
            "molecular_mass": 82.0,
            "conjugate_acid": "vinegar-acid",
        },
    ]

    def write(self, payload):
        handle, path = tempfile.mkstemp(suffix=".json")
        with os.fdopen(handle, "w") as f:
            json.dump(payload, f)
        self.addCleanup(os.remove, path)
        return path

    def test_list_of_records(self):
        catalog = StaticCatalog.from_json(self.write(self.records))
        self.assertEqual(len(catalog), 3)
        self.assertEqual(catalog.get("water").name, "water")
        self.assertEqual(catalog.get("vinegar-acid").pka, (4.76,))
        self.assertEqual(catalog.conjugate_bases("vinegar-acid"), ("vinegar-salt",))

    def test_wrapped_records(self):
        catalog = StaticCatalog.from_json(self.write({"substances": self.records}))
        self.assertIn("vinegar-salt", catalog)

    def test_bad_record(self):
        with self.assertRaises(InvalidInputError):
            StaticCatalog.from_json(self.write([{"id": "water"}]))


class TestPartialDensity(unittest.TestCase):
    def setUp(self):
        self.catalog = default_catalog()

    def test_water_is_the_reference(self):
        self.assertEqual(self.catalog.component("water").partial_density(0.3), 1.0)

    def test_measured_curve(self):
        ethanol = self.catalog.component("ethanol")
        self.assertAlmostEqual(ethanol.partial_density(0.4), -0.0648, delta=1e-9)
        self.assertAlmostEqual(ethanol.partial_density(0.0), 0.0, delta=1e-9)

    def test_linear_without_curve(self):
        glucose = self.catalog.component("glucose")
        self.assertAlmostEqual(glucose.partial_density(0.5), 0.27, delta=1e-9)

    def test_fraction_is_clamped(self):
        sucrose = self.catalog.component("sucrose")
        self.assertAlmostEqual(sucrose.partial_density(1.5), sucrose.partial_density(1.0))
        self.assertAlmostEqual(sucrose.partial_density(-1.0), 0.0, delta=1e-9)


if __name__ == "__main__":
    unittest.main()
