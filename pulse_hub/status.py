"""
Online/offline derivation and relative-age formatting.
"""
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pulse_hub.models import Sample

ONLINE_THRESHOLD_SECONDS = 120

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR


class HostStatus(str, Enum):
    ONLINE = 'online'
    OFFLINE = 'offline'


class AgeStyle(Enum):
    """Abbreviated units for the terminal, full words for the dashboard"""
    SHORT = 'short'
    LONG = 'long'


_UNITS = {
    AgeStyle.SHORT: ('{}s', '{}min', '{}h', '{}d'),
    AgeStyle.LONG: ('{} seconds', '{} minutes', '{} hours', '{} days'),
}


def elapsed_since(timestamp, now: float) -> Optional[float]:
    """Seconds between timestamp and now, or None when timestamp is not a number"""
    try:
        elapsed = now - float(timestamp)
    except (TypeError, ValueError):
        return None
    return elapsed if math.isfinite(elapsed) else None


def derive_status(timestamp, now: float) -> HostStatus:
    """
    ONLINE when the sample is less than 120s old (120s itself is OFFLINE).

    Agents are trusted to send epoch seconds; anything else is OFFLINE.
    """
    elapsed = elapsed_since(timestamp, now)
    if elapsed is not None and elapsed < ONLINE_THRESHOLD_SECONDS:
        return HostStatus.ONLINE
    return HostStatus.OFFLINE


def format_age(elapsed: float, style: AgeStyle = AgeStyle.SHORT) -> str:
    """
    Render elapsed seconds as a coarse relative age.

    Buckets: under a minute in seconds, under an hour in minutes, under a
    day in hours, otherwise days. Values are truncated, never rounded.
    Negative input (agent clock ahead of ours) reads as 0.
    """
    seconds, minutes, hours, days = _UNITS[style]
    elapsed = max(elapsed, 0)

    if elapsed < MINUTE:
        return seconds.format(int(elapsed))
    if elapsed < HOUR:
        return minutes.format(int(elapsed // MINUTE))
    if elapsed < DAY:
        return hours.format(int(elapsed // HOUR))
    return days.format(int(elapsed // DAY))


@dataclass(frozen=True)
class HostView:
    """A host's latest sample with its derived status"""
    sample: Sample
    status: HostStatus
    age_seconds: Optional[float]
    last_seen_human: str

    @property
    def online(self) -> bool:
        return self.status is HostStatus.ONLINE


def describe(sample: Sample, now: float, style: AgeStyle = AgeStyle.SHORT) -> HostView:
    """
    Attach status and age to a sample.

    A non-numeric timestamp leaves age_seconds as None and shows the raw
    value in place of the age.
    """
    age = elapsed_since(sample.timestamp, now)
    return HostView(
        sample=sample,
        status=derive_status(sample.timestamp, now),
        age_seconds=age,
        last_seen_human=str(sample.timestamp) if age is None else format_age(age, style),
    )
