import logging

from django.conf import settings
from django.core.exceptions import PermissionDenied
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from accounts.models import is_society_admin

from . import lifecycle
from .availability import resolve
from .exceptions import ConsecutiveDayLimitExceeded, DuplicateBooking, InvalidTransition, SlotUnavailable, UnknownAmenityType
from .gateway import gateway
from .limits import active_dates, longest_run, would_exceed_limit
from .models import ACTIVE_STATUSES, Amenity, AmenityType, Booking, BookingStatus
from .slots import find_slot, format_time, has_slot_grid, parse_time

logger = logging.getLogger(__name__)


def guest_parking_limit():
    return getattr(settings, "BOOKING_GUEST_PARKING_MAX_CONSECUTIVE_DAYS", 2)


def check_consecutive_days(user_id, booking_date):
    """Raise ConsecutiveDayLimitExceeded if a guest-parking booking on ``booking_date`` is one day too many."""
    existing = active_dates(gateway.list_user_bookings(user_id, AmenityType.GUEST_PARKING))
    limit = guest_parking_limit()
    if would_exceed_limit(existing, booking_date, limit):
        raise ConsecutiveDayLimitExceeded(longest_run(existing, booking_date), limit)


def check_slot_request(amenity, owner, booking_date, start_time, as_admin=False):
    """
    Run the slot guards for a new booking of ``amenity`` and return the
    reservable slot ``start_time`` maps to. Raises a BookingError when the
    booking cannot be made.
    """
    if not has_slot_grid(amenity.type):
        raise UnknownAmenityType(amenity.type)

    requested = parse_time(start_time)
    slot = find_slot(amenity.type, requested)
    if slot is None:
        raise SlotUnavailable(f"{format_time(requested)} is not a bookable slot for {amenity.name}.")

    if amenity.type == AmenityType.GUEST_PARKING and not as_admin:
        try:
            check_consecutive_days(owner.pk, booking_date)
        except ConsecutiveDayLimitExceeded as exc:
            logger.warning("Guest parking streak of %s days refused for user %s.", exc.streak, owner.pk)
            raise

    existing = gateway.list_bookings(amenity.pk, booking_date)
    availability = resolve(amenity.pk, amenity.type, booking_date, existing)
    if not availability.is_available(slot):
        logger.warning("Slot %s on %s for %s already taken.", format_time(slot.start_time), booking_date, amenity.name)
        raise SlotUnavailable()

    if getattr(settings, "BOOKING_ONE_PER_USER_PER_DAY", True):
        if any(b.user_id == owner.pk and b.is_active for b in existing):
            raise DuplicateBooking()
    return slot


@transaction.atomic
def request_booking(user, amenity_id, booking_date, start_time, on_behalf_of=None):
    """
    Book a slot for ``user`` (or, for admins, for ``on_behalf_of``).
    Residents get a pending booking, admins a confirmed one.
    """
    as_admin = is_society_admin(user)
    if on_behalf_of is not None and not as_admin:
        raise PermissionDenied("Only admins can book on behalf of another resident.")
    owner = on_behalf_of or user

    amenity = gateway.get_amenity(amenity_id, lock=True)
    slot = check_slot_request(amenity, owner, booking_date, start_time, as_admin=as_admin)

    booking = gateway.create_booking(
        amenity.pk,
        owner.pk,
        booking_date,
        slot.start_time,
        slot.end_time,
        lifecycle.initial_status(as_admin),
        guest_parking_slot=format_time(parse_time(start_time)) if amenity.type == AmenityType.GUEST_PARKING else "",
    )
    logger.info("Booking %s created for %s on %s at %s (%s).",
                booking.pk, amenity.name, booking_date, format_time(slot.start_time), booking.status)
    return booking


def _require_admin(actor, action):
    if not is_society_admin(actor):
        raise PermissionDenied(f"Only admins can {action} bookings.")


@transaction.atomic
def approve_booking(booking_id, actor):
    _require_admin(actor, "approve")
    booking = gateway.get_booking(booking_id, lock=True)
    target = lifecycle.next_status(booking.status, "approve")
    if gateway.slot_taken(booking.amenity_id, booking.booking_date, booking.start_time, exclude_id=booking.pk):
        raise SlotUnavailable("Another booking already holds this slot.")
    booking = gateway.update_booking_status(booking.pk, target)
    logger.info("Booking %s approved by %s.", booking.pk, actor.username)
    return booking


@transaction.atomic
def reject_booking(booking_id, actor, reason=""):
    _require_admin(actor, "reject")
    booking = gateway.get_booking(booking_id, lock=True)
    target = lifecycle.next_status(booking.status, "reject")
    booking = gateway.update_booking_status(booking.pk, target, reason=(reason or "").strip())
    logger.info("Booking %s rejected by %s.", booking.pk, actor.username)
    return booking


@transaction.atomic
def cancel_booking(booking_id, actor, today=None):
    booking = gateway.get_booking(booking_id, lock=True)
    if booking.user_id != actor.pk and not is_society_admin(actor):
        raise PermissionDenied("You can only cancel your own bookings.")
    target = lifecycle.next_status(booking.status, "cancel")
    today = today or timezone.localdate()
    if booking.booking_date < today:
        raise InvalidTransition(booking.status, target, "This booking's date has already passed.")
    booking = gateway.update_booking_status(booking.pk, target)
    logger.info("Booking %s cancelled by %s.", booking.pk, actor.username)
    return booking


def complete_elapsed_bookings(today=None):
    today = today or timezone.localdate()
    count = gateway.complete_elapsed(today)
    if count:
        logger.info("Marked %s booking(s) before %s as completed.", count, today)
    return count


def booking_report():
    """Counts by status plus a per-amenity breakdown for the admin dashboard."""
    totals = Booking.objects.aggregate(
        total=Count("id"),
        active=Count("id", filter=Q(status__in=ACTIVE_STATUSES)),
        pending=Count("id", filter=Q(status=BookingStatus.PENDING)),
        confirmed=Count("id", filter=Q(status=BookingStatus.CONFIRMED)),
        cancelled=Count("id", filter=Q(status=BookingStatus.CANCELLED)),
        rejected=Count("id", filter=Q(status=BookingStatus.REJECTED)),
        completed=Count("id", filter=Q(status=BookingStatus.COMPLETED)),
    )
    by_amenity = (
        Amenity.objects
        .annotate(
            total=Count("bookings"),
            active=Count("bookings", filter=Q(bookings__status__in=ACTIVE_STATUSES)),
        )
        .order_by("-total", "name")
        .values("id", "name", "type", "total", "active")
    )
    return {
        "totals": totals,
        "by_amenity": [dict(row, id=str(row["id"])) for row in by_amenity],
    }
