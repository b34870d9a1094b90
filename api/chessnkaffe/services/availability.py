from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Sequence

from ..records import TimeWindow

EXACT_DATE_SCORE = 10.0
SAME_WEEKDAY_SCORE = 8.0
WEEKEND_SCORE = 6.0
CLOSEST_DATE_BASE = 5.0
CLOSEST_DATE_STEP = 0.5
CLOSEST_DATE_FLOOR = 2.0


@dataclass(frozen=True)
class DateMatch:
    date: date | None
    score: float


def day_priority(d: date) -> int:
    # Sunday 7, Saturday 6 ... Monday 1
    return d.isoweekday()


def is_weekend(d: date) -> bool:
    return d.weekday() >= 5


def _highest_priority(candidates: Sequence[date]) -> date:
    # max() keeps the first of equal keys, so earlier match dates win ties
    return max(candidates, key=day_priority)


def find_best_matching_date(user_dates: Sequence[date], match_dates: Sequence[date]) -> DateMatch:
    if not match_dates:
        return DateMatch(date=None, score=0.0)

    user_set = set(user_dates)
    exact = [d for d in match_dates if d in user_set]
    if exact:
        return DateMatch(date=_highest_priority(exact), score=EXACT_DATE_SCORE)

    user_weekdays = {d.weekday() for d in user_dates}
    same_weekday = [d for d in match_dates if d.weekday() in user_weekdays]
    if same_weekday:
        return DateMatch(date=_highest_priority(same_weekday), score=SAME_WEEKDAY_SCORE)

    weekend = [d for d in match_dates if is_weekend(d)]
    if weekend:
        return DateMatch(date=_highest_priority(weekend), score=WEEKEND_SCORE)

    best = match_dates[0]
    smallest: float = math.inf
    for match_date in match_dates:
        for user_date in user_dates:
            diff = abs((match_date - user_date).days)
            if diff < smallest or (diff == smallest and day_priority(match_date) > day_priority(best)):
                smallest = diff
                best = match_date

    score = max(CLOSEST_DATE_FLOOR, CLOSEST_DATE_BASE - smallest * CLOSEST_DATE_STEP)
    return DateMatch(date=best, score=float(score))


def parse_clock(value: str) -> int:
    """Minutes since midnight for an ``HH:MM`` string."""
    hours, minutes = str(value).strip().split(":")
    h, m = int(hours), int(minutes)
    if not (0 <= h <= 23 and 0 <= m <= 59):
        raise ValueError(f"invalid clock time: {value!r}")
    return h * 60 + m


def time_overlap_percentage(first: TimeWindow, second: TimeWindow) -> float:
    start1, end1 = parse_clock(first.start_time), parse_clock(first.end_time)
    start2, end2 = parse_clock(second.start_time), parse_clock(second.end_time)

    overlap = min(end1, end2) - max(start1, start2)
    if overlap <= 0:
        return 0.0
    shorter = min(end1 - start1, end2 - start2)
    if shorter <= 0:
        return 0.0
    return overlap / shorter * 100.0


def time_score(first: TimeWindow | None, second: TimeWindow | None) -> float:
    if first is None or second is None:
        return 0.0
    return time_overlap_percentage(first, second) / 10.0
