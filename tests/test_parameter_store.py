"""
Unit tests for ParameterStore
Tests dependency ordering, transactional updates and dependent re-resolution
"""

import unittest

from encode_negotiator.errors import ErrorCategory, FieldOutOfRangeError
from encode_negotiator.parameter_store import ConfigurationField, ParameterStore


def positive(value):
    if value <= 0:
        raise FieldOutOfRangeError("must be positive", field="rate", value=value)
    return value


class TestParameterStore(unittest.TestCase):

    def setUp(self):
        self.calls = []
        self.store = ParameterStore()
        # Registered before its dependencies to exercise the ordering
        self.store.add_field(ConfigurationField(
            name="product", default=0, setter=self._product, depends_on=("width", "rate")))
        self.store.add_field(ConfigurationField(name="width", default=10))
        self.store.add_field(ConfigurationField(name="rate", default=2, setter=positive))
        self.store.add_field(ConfigurationField(name="kind", default="raw", read_only=True))

    def _product(self, proposed, width, rate):
        self.calls.append((proposed, width, rate))
        return width * rate

    def test_resolution_order_respects_dependencies(self):
        order = self.store.resolution_order
        self.assertLess(order.index("width"), order.index("product"))
        self.assertLess(order.index("rate"), order.index("product"))
        self.assertEqual(order, ["width", "rate", "kind", "product"])

    def test_dependent_is_reresolved_when_dependency_changes(self):
        result = self.store.apply({"width": 20})

        self.assertTrue(result.success)
        self.assertEqual(self.store.get("product"), 40)
        self.assertEqual(result.changed, ["width", "product"])
        self.assertEqual(self.calls, [(0, 20, 2)])

    def test_unrelated_update_does_not_touch_dependent(self):
        store = ParameterStore()
        store.add_field(ConfigurationField(name="a", default=1))
        store.add_field(ConfigurationField(name="b", default=1, setter=lambda p, a: p + a, depends_on=("a",)))
        store.add_field(ConfigurationField(name="c", default=1))

        result = store.apply({"c": 5})

        self.assertTrue(result.success)
        self.assertEqual(store.get("b"), 1)
        self.assertEqual(result.changed, ["c"])

    def test_unchanged_proposal_still_triggers_dependents(self):
        result = self.store.apply({"rate": 2})

        self.assertTrue(result.success)
        self.assertEqual(self.store.get("product"), 20)
        self.assertEqual(self.calls, [(0, 10, 2)])

    def test_rejection_rolls_back_every_field(self):
        result = self.store.apply({"width": 50, "rate": -1})

        self.assertFalse(result.success)
        self.assertEqual(self.store.get("width"), 10)
        self.assertEqual(self.store.get("rate"), 2)
        self.assertEqual(self.store.get("product"), 0)
        self.assertEqual(len(result.failures), 1)
        failure = result.failure_for("rate")
        self.assertEqual(failure.category, ErrorCategory.FIELD_OUT_OF_RANGE)
        self.assertEqual(failure.value, -1)
        # Dependent of the rejected field is skipped
        self.assertEqual(self.calls, [])

    def test_unknown_field_is_reported(self):
        result = self.store.apply({"colour": "blue", "width": 12})

        self.assertFalse(result.success)
        self.assertIsNotNone(result.failure_for("colour"))
        self.assertEqual(self.store.get("width"), 10)

    def test_read_only_field(self):
        self.assertTrue(self.store.apply({"kind": "raw"}).success)

        result = self.store.apply({"kind": "avc"})
        self.assertFalse(result.success)
        self.assertEqual(self.store.get("kind"), "raw")

    def test_duplicate_field_rejected(self):
        with self.assertRaises(ValueError):
            self.store.add_field(ConfigurationField(name="width", default=1))

    def test_unknown_dependency_and_cycle_detected(self):
        store = ParameterStore()
        store.add_field(ConfigurationField(name="a", default=0, depends_on=("missing",)))
        with self.assertRaises(ValueError):
            store.resolution_order

        cyclic = ParameterStore()
        cyclic.add_field(ConfigurationField(name="a", default=0, depends_on=("b",)))
        cyclic.add_field(ConfigurationField(name="b", default=0, depends_on=("a",)))
        with self.assertRaises(ValueError):
            cyclic.resolution_order

    def test_values_returns_copy(self):
        values = self.store.values()
        values["width"] = 99
        self.assertEqual(self.store.get("width"), 10)
        self.assertIn("width", self.store)
        self.assertNotIn("height", self.store)


if __name__ == '__main__':
    unittest.main()
