from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from accounts.models import display_label

from .models import ACTIVE_STATUSES
from .slots import Slot, find_slot, generate_slots, has_slot_grid, reservable_slots

NO_SLOTS_MESSAGE = "No slots available, please contact the admin."


@dataclass(frozen=True)
class BookedSlot:
    start_time: object
    end_time: object
    label: str
    booked_by_label: str
    booking_id: object = None


@dataclass(frozen=True)
class SlotOption:
    start_time: object
    end_time: object
    label: str
    free: bool


@dataclass(frozen=True)
class Availability:
    available: List[Slot] = field(default_factory=list)
    booked: List[BookedSlot] = field(default_factory=list)
    # Display grid offered to the picker; each option is free when the reservable slot it books is.
    options: List[SlotOption] = field(default_factory=list)
    message: Optional[str] = None

    def is_available(self, slot):
        return any(s.start_time == slot.start_time for s in self.available)


def owner_label(booking):
    return display_label(booking.user)


def _matches(booking, amenity_id, date):
    return (
        booking.status in ACTIVE_STATUSES
        and str(booking.amenity_id) == str(amenity_id)
        and booking.booking_date == date
    )


def resolve(amenity_id, amenity_type, date, existing_bookings: Iterable, label_for=owner_label) -> Availability:
    """
    Split the reservable grid of an amenity on ``date`` into free and taken
    slots. A slot is taken when an active booking for the same amenity and
    date starts at the same time. Both lists keep the grid order.

    ``options`` lists the display grid (the 24 hourly guest-parking starts,
    for instance) with each entry marked free when the slot it books is.
    """
    if not has_slot_grid(amenity_type):
        return Availability(message=NO_SLOTS_MESSAGE)

    taken = {}
    for booking in existing_bookings:
        if _matches(booking, amenity_id, date):
            taken.setdefault(booking.start_time, booking)

    available, booked = [], []
    for slot in reservable_slots(amenity_type):
        booking = taken.get(slot.start_time)
        if booking is None:
            available.append(slot)
        else:
            booked.append(BookedSlot(
                start_time=slot.start_time,
                end_time=slot.end_time,
                label=slot.label,
                booked_by_label=label_for(booking),
                booking_id=booking.id,
            ))

    free_starts = {slot.start_time for slot in available}
    options = [
        SlotOption(
            start_time=option.start_time,
            end_time=option.end_time,
            label=option.label,
            free=find_slot(amenity_type, option.start_time).start_time in free_starts,
        )
        for option in generate_slots(amenity_type, date)
    ]
    return Availability(available=available, booked=booked, options=options)
