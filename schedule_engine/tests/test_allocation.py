from __future__ import annotations

import math
import unittest

import pandas as pd

from schedule_engine.services.allocation import event_instalment_count, split_amounts
from schedule_engine.services.fields import AMOUNT_FIELDS, AmountField, amount_fields
from schedule_engine.services.options import ScheduleOptions


class TestInstalmentCount(unittest.TestCase):
    def test_cancellation_is_one_regardless_of_frequency(self) -> None:
        self.assertEqual(event_instalment_count("Cancellation", "monthly"), 1)
        self.assertEqual(event_instalment_count("Cancellation", None), 1)

    def test_frequency_counts(self) -> None:
        self.assertEqual(event_instalment_count("New", "monthly"), 12)
        self.assertEqual(event_instalment_count("Renewal", "quarterly"), 4)
        self.assertEqual(event_instalment_count("Upgrade", "annual"), 1)
        self.assertIsNone(event_instalment_count("New", "weekly"))


class TestAmountFields(unittest.TestCase):
    def test_product_component_pairs(self) -> None:
        self.assertEqual(len(AMOUNT_FIELDS), 11)
        self.assertIn(AmountField("b", "tax"), AMOUNT_FIELDS)
        self.assertNotIn(AmountField("b", "admin_fee"), AMOUNT_FIELDS)

    def test_adding_a_product_is_data(self) -> None:
        fields = amount_fields({"d": ("premium",)})
        self.assertEqual([f.source_column for f in fields], ["product_d_premium"])
        self.assertEqual(fields[0].base_column, "base_instalment_d_premium")
        self.assertEqual(fields[0].upgrade_column, "upgrade_instalment_d_premium")

    def test_read_missing_column_is_nan(self) -> None:
        values = AmountField("c", "tax").read(pd.DataFrame({"x": [1, 2]}))
        self.assertTrue(values.isna().all())


class TestSplitAmounts(unittest.TestCase):
    def setUp(self) -> None:
        self.fields = (AmountField("a", "premium"), AmountField("a", "tax"))
        self.rows = pd.DataFrame(
            {
                "product_a_premium": [1200.0, 1200.0, float("nan")],
                "product_a_tax": [100.0, 100.0, 50.0],
            }
        )
        self.counts = pd.Series(pd.array([12, None, 4], dtype="Int64"))

    def test_divides_where_selected(self) -> None:
        mask = pd.Series([True, True, True])
        out = split_amounts(self.rows, self.fields, self.counts, mask, lambda f: f.base_column)

        self.assertAlmostEqual(out.loc[0, "base_instalment_a_premium"], 100.0)
        self.assertAlmostEqual(out.loc[0, "base_instalment_a_tax"], 8.33, places=2)
        # null count
        self.assertTrue(math.isnan(out.loc[1, "base_instalment_a_premium"]))
        # null amount
        self.assertTrue(math.isnan(out.loc[2, "base_instalment_a_premium"]))
        self.assertAlmostEqual(out.loc[2, "base_instalment_a_tax"], 12.5)

    def test_unselected_rows_are_nan(self) -> None:
        mask = pd.Series([False, True, True])
        out = split_amounts(self.rows, self.fields, self.counts, mask, lambda f: f.base_column)
        self.assertTrue(out.loc[0].isna().all())

    def test_zero_when_count_missing(self) -> None:
        mask = pd.Series([True, True, True])
        out = split_amounts(
            self.rows,
            self.fields,
            self.counts,
            mask,
            lambda f: f.base_column,
            zero_when_count_missing=True,
        )
        self.assertEqual(out.loc[1, "base_instalment_a_premium"], 0.0)
        self.assertEqual(out.loc[1, "base_instalment_a_tax"], 0.0)


class TestScheduleOptions(unittest.TestCase):
    def test_defaults(self) -> None:
        opts = ScheduleOptions()
        self.assertEqual(opts.late_upgrade_mode, "drop")
        self.assertEqual(opts.duplicate_cancellation_mode, "earliest")
        self.assertEqual(opts.missing_count_mode, "null")

    def test_invalid_mode_raises(self) -> None:
        with self.assertRaises(ValueError):
            ScheduleOptions(late_upgrade_mode="spread")

    def test_from_mapping(self) -> None:
        opts = ScheduleOptions.from_mapping({"late_upgrade_mode": " LUMP_SUM "})
        self.assertEqual(opts.late_upgrade_mode, "lump_sum")
        with self.assertRaises(ValueError):
            ScheduleOptions.from_mapping({"unknown": "x"})


if __name__ == "__main__":
    unittest.main()
