from __future__ import annotations

from datetime import date, datetime
import unittest

from interview_navigator.core.errors import ValidationError
from interview_navigator.core.intervals import (
    TimeSlot,
    day_of_week,
    generate_sub_slots,
    interval_contains,
    intervals_overlap,
    is_valid_time,
    minutes_to_time,
    normalize_time,
    time_to_minutes,
)


class TimeParsingTests(unittest.TestCase):
    def test_time_to_minutes_covers_the_day(self) -> None:
        self.assertEqual(time_to_minutes("00:00"), 0)
        self.assertEqual(time_to_minutes("09:30"), 570)
        self.assertEqual(time_to_minutes("9:05"), 545)
        self.assertEqual(time_to_minutes("23:59"), 1439)

    def test_time_to_minutes_rejects_malformed_values(self) -> None:
        for raw in ("24:00", "12:60", "1200", "", "ab:cd", "12:5", " 9:00"):
            with self.subTest(raw=raw):
                self.assertFalse(is_valid_time(raw))
                with self.assertRaises(ValidationError):
                    time_to_minutes(raw)

    def test_minutes_to_time_and_normalize(self) -> None:
        self.assertEqual(minutes_to_time(0), "00:00")
        self.assertEqual(minutes_to_time(1439), "23:59")
        self.assertEqual(normalize_time("9:00"), "09:00")
        with self.assertRaises(ValidationError):
            minutes_to_time(1440)
        with self.assertRaises(ValidationError):
            minutes_to_time(-1)

    def test_day_of_week_starts_on_sunday(self) -> None:
        self.assertEqual(day_of_week(date(2030, 1, 6)), 0)
        self.assertEqual(day_of_week(date(2030, 1, 7)), 1)
        self.assertEqual(day_of_week(date(2030, 1, 12)), 6)


class OverlapTests(unittest.TestCase):
    def test_overlap_is_symmetric(self) -> None:
        points = [0, 15, 30, 45, 60, 90]
        for a_start in points:
            for a_end in points:
                if a_end <= a_start:
                    continue
                for b_start in points:
                    for b_end in points:
                        if b_end <= b_start:
                            continue
                        self.assertEqual(
                            intervals_overlap(a_start, a_end, b_start, b_end),
                            intervals_overlap(b_start, b_end, a_start, a_end),
                        )

    def test_touching_intervals_do_not_overlap(self) -> None:
        ten = time_to_minutes("10:00")
        ten_45 = time_to_minutes("10:45")
        eleven_30 = time_to_minutes("11:30")
        self.assertFalse(intervals_overlap(ten, ten_45, ten_45, eleven_30))
        self.assertTrue(intervals_overlap(ten, ten_45, ten_45 - 1, eleven_30))

    def test_overlap_works_on_datetimes(self) -> None:
        a_start = datetime(2030, 1, 7, 10, 0)
        a_end = datetime(2030, 1, 7, 10, 45)
        self.assertFalse(intervals_overlap(a_start, a_end, a_end, datetime(2030, 1, 7, 11, 30)))
        self.assertTrue(intervals_overlap(a_start, a_end, datetime(2030, 1, 7, 10, 30), datetime(2030, 1, 7, 11, 0)))

    def test_containment_is_inclusive_at_both_ends(self) -> None:
        self.assertTrue(interval_contains(540, 600, 540, 600))
        self.assertTrue(interval_contains(540, 600, 550, 580))
        self.assertFalse(interval_contains(540, 600, 530, 580))
        self.assertFalse(interval_contains(540, 600, 580, 610))


class SubSlotTests(unittest.TestCase):
    def test_thirty_minute_slots(self) -> None:
        self.assertListEqual(
            list(generate_sub_slots("09:00", "10:00", 30)),
            [TimeSlot("09:00", "09:30"), TimeSlot("09:30", "10:00")],
        )

    def test_trailing_remainder_is_dropped(self) -> None:
        self.assertListEqual(list(generate_sub_slots("09:00", "10:00", 45)), [TimeSlot("09:00", "09:45")])

    def test_range_shorter_than_duration_yields_nothing(self) -> None:
        self.assertListEqual(list(generate_sub_slots("09:00", "09:20", 30)), [])

    def test_generator_is_restartable(self) -> None:
        first = list(generate_sub_slots("13:00", "15:00", 40))
        second = list(generate_sub_slots("13:00", "15:00", 40))
        self.assertListEqual(first, second)
        self.assertEqual(len(first), 3)

    def test_non_positive_duration_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            list(generate_sub_slots("09:00", "10:00", 0))


if __name__ == "__main__":
    unittest.main()
