"""
Slot grids per amenity type.

Every amenity type maps to a ``SlotGrid`` descriptor; the slots offered to
residents are generated from it, so a new amenity type only needs a new
table entry.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Callable, Dict, List, Optional, Tuple

from .models import AmenityType

FULL_DAY_START = time(0, 0)
FULL_DAY_END = time(23, 59)


@dataclass(frozen=True)
class Slot:
    start_time: time
    end_time: time
    label: str


@dataclass(frozen=True)
class SlotGrid:
    start_hours: Tuple[int, ...]
    length_hours: int = 1
    label: Optional[Callable[[time, time], str]] = None
    # Full-day grids are booked as one 00:00-23:59 slot, whatever the display grid shows.
    full_day: bool = False
    full_day_label: str = "Full Day Booking"


def format_time(t: time) -> str:
    return t.strftime("%H:%M")


def parse_time(value) -> time:
    if isinstance(value, time):
        return value
    return time.fromisoformat(str(value).strip()[:5])


def _clock(t: time) -> str:
    hour = t.hour % 12 or 12
    suffix = "AM" if t.hour < 12 else "PM"
    return f"{hour}:{t.minute:02d} {suffix}"


def _range_label(start: time, end: time) -> str:
    return f"{_clock(start)} - {_clock(end)}"


def _day_from_label(start: time, end: time) -> str:
    return f"{_clock(start)} - 24 hours"


SLOT_GRIDS: Dict[str, SlotGrid] = {
    AmenityType.SWIMMING_POOL.value: SlotGrid(start_hours=(6, 7, 8, 9, 18, 19, 20, 21)),
    AmenityType.POOL_TABLE.value: SlotGrid(start_hours=tuple(range(9, 21))),
    AmenityType.GYM.value: SlotGrid(start_hours=tuple(range(5, 22, 2)), length_hours=2),
    AmenityType.PARTY_HALL.value: SlotGrid(start_hours=(), full_day=True),
    AmenityType.GUEST_PARKING.value: SlotGrid(
        start_hours=tuple(range(24)),
        length_hours=24,
        label=_day_from_label,
        full_day=True,
        full_day_label="Full Day (24 hours)",
    ),
}


def _grid_for(amenity_type) -> Optional[SlotGrid]:
    return SLOT_GRIDS.get(getattr(amenity_type, "value", amenity_type))


def _full_day_slot(grid: SlotGrid) -> Slot:
    return Slot(FULL_DAY_START, FULL_DAY_END, grid.full_day_label)


def has_slot_grid(amenity_type) -> bool:
    return _grid_for(amenity_type) is not None


def generate_slots(amenity_type, date=None) -> List[Slot]:
    """
    Return the slots a resident can pick from for ``amenity_type``, in
    display order. Unknown types yield an empty list. ``date`` is accepted
    for symmetry with the callers; no grid depends on it.
    """
    grid = _grid_for(amenity_type)
    if grid is None:
        return []
    if not grid.start_hours:
        return [_full_day_slot(grid)]

    label = grid.label or _range_label
    slots = []
    for hour in grid.start_hours:
        start = time(hour, 0)
        end = time((hour + grid.length_hours) % 24, 0)
        slots.append(Slot(start, end, label(start, end)))
    return slots


def reservable_slots(amenity_type) -> List[Slot]:
    """
    The grid bookings are actually made against. Full-day amenities collapse
    to their single full-day slot.
    """
    grid = _grid_for(amenity_type)
    if grid is None:
        return []
    if grid.full_day:
        return [_full_day_slot(grid)]
    return generate_slots(amenity_type)


def find_slot(amenity_type, start_time) -> Optional[Slot]:
    """Map a requested start time onto the reservable slot it books."""
    grid = _grid_for(amenity_type)
    if grid is None:
        return None
    start_time = parse_time(start_time)
    if grid.full_day:
        offered = {s.start_time for s in generate_slots(amenity_type)} | {FULL_DAY_START}
        return _full_day_slot(grid) if start_time in offered else None
    for slot in reservable_slots(amenity_type):
        if slot.start_time == start_time:
            return slot
    return None
