from __future__ import annotations

from datetime import date
import unittest

import pandas as pd

from schedule_engine.services.alignment import (
    aligned_start_date,
    is_aligned,
    reference_cycle,
    resolve_alignment,
    upgrade_instalment_count,
)
from schedule_engine.services.context import ScheduleContext


START = date(2024, 1, 1)
END = date(2024, 12, 31)


class TestAlignedStart(unittest.TestCase):
    def test_reference_cycle_quarterly(self) -> None:
        self.assertEqual(
            reference_cycle(START, END, 3),
            [date(2024, 1, 1), date(2024, 4, 1), date(2024, 7, 1), date(2024, 10, 1)],
        )

    def test_unaligned_upgrade_moves_to_next_cycle_date(self) -> None:
        self.assertFalse(is_aligned(START, date(2024, 5, 10), 3))
        self.assertEqual(aligned_start_date(START, END, date(2024, 5, 10), 3), date(2024, 7, 1))

    def test_aligned_upgrade_keeps_effective_date(self) -> None:
        effective = date(2024, 4, 15)
        self.assertTrue(is_aligned(START, effective, 3))
        self.assertEqual(aligned_start_date(START, END, effective, 3), effective)

    def test_monthly_is_always_aligned(self) -> None:
        effective = date(2024, 6, 20)
        self.assertEqual(aligned_start_date(START, END, effective, 1), effective)

    def test_after_last_cycle_date_keeps_effective_date(self) -> None:
        effective = date(2024, 11, 15)
        self.assertEqual(aligned_start_date(START, END, effective, 3), effective)


class TestUpgradeInstalmentCount(unittest.TestCase):
    def test_quarterly_remaining_periods(self) -> None:
        self.assertEqual(upgrade_instalment_count(START, END, date(2024, 5, 10), 3), 2)

    def test_quarterly_aligned_month(self) -> None:
        # Apr, Jul, Oct
        self.assertEqual(upgrade_instalment_count(START, END, date(2024, 4, 15), 3), 3)

    def test_monthly_remaining_periods(self) -> None:
        # May .. Dec
        self.assertEqual(upgrade_instalment_count(START, END, date(2024, 5, 10), 1), 8)

    def test_annual_forces_one(self) -> None:
        self.assertEqual(upgrade_instalment_count(START, END, date(2024, 5, 10), 12), 1)

    def test_after_policy_end_is_one(self) -> None:
        self.assertEqual(upgrade_instalment_count(START, END, date(2025, 1, 15), 3), 1)
        self.assertEqual(upgrade_instalment_count(START, END, date(2024, 11, 15), 3), 1)


class TestResolveAlignment(unittest.TestCase):
    def test_aligned_start_only_on_upgrade_rows(self) -> None:
        events = pd.DataFrame(
            [
                {
                    "transaction_type": "New",
                    "policy_start_date": START,
                    "policy_end_date": END,
                    "event_effective_date": START,
                    "interval_months": 3,
                },
                {
                    "transaction_type": "Upgrade",
                    "policy_start_date": START,
                    "policy_end_date": END,
                    "event_effective_date": date(2024, 5, 10),
                    "interval_months": 3,
                },
            ]
        )
        out = resolve_alignment(events, ScheduleContext())

        self.assertIsNone(out.loc[0, "aligned_start"])
        self.assertEqual(out.loc[0, "pay_start"], START)
        self.assertEqual(out.loc[1, "aligned_start"], date(2024, 7, 1))
        self.assertEqual(out.loc[1, "pay_start"], date(2024, 7, 1))
        self.assertNotIn("aligned_start", events.columns)


if __name__ == "__main__":
    unittest.main()
