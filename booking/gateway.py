"""
Persistence boundary for amenity bookings.

All writes happen inside a transaction. The conditional unique constraint on
(amenity, booking_date, start_time) for active bookings is the authoritative
guard against double-booking; the checks made here before inserting are only
there to fail early with a readable error.
"""
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from .exceptions import SlotUnavailable
from .lifecycle import assert_transition
from .models import ACTIVE_STATUSES, Amenity, Booking, BookingStatus

logger = logging.getLogger(__name__)


class BookingGateway:

    def _bookings(self):
        return Booking.objects.select_related("user", "user__resident", "amenity")

    def get_amenity(self, amenity_id, lock=False):
        qs = Amenity.objects.filter(is_active=True)
        if lock:
            qs = qs.select_for_update()
        return qs.get(pk=amenity_id)

    def get_booking(self, booking_id, lock=False):
        if lock:
            return Booking.objects.select_for_update().get(pk=booking_id)
        return self._bookings().get(pk=booking_id)

    def list_bookings(self, amenity_id, date):
        """Every booking of the amenity on ``date``, whatever its status."""
        return list(self._bookings().filter(amenity_id=amenity_id, booking_date=date).order_by("start_time", "created_at"))

    def list_user_bookings(self, user_id, amenity_type=None):
        qs = self._bookings().filter(user_id=user_id)
        if amenity_type:
            qs = qs.filter(amenity__type=amenity_type)
        return list(qs.order_by("booking_date", "start_time"))

    def slot_taken(self, amenity_id, date, start_time, exclude_id=None):
        qs = Booking.objects.filter(
            amenity_id=amenity_id,
            booking_date=date,
            start_time=start_time,
            status__in=ACTIVE_STATUSES,
        )
        if exclude_id is not None:
            qs = qs.exclude(pk=exclude_id)
        return qs.exists()

    @transaction.atomic
    def create_booking(self, amenity_id, user_id, date, start_time, end_time, initial_status, guest_parking_slot=""):
        Amenity.objects.select_for_update().get(pk=amenity_id)
        if self.slot_taken(amenity_id, date, start_time):
            raise SlotUnavailable()
        try:
            with transaction.atomic():
                booking = Booking.objects.create(
                    amenity_id=amenity_id,
                    user_id=user_id,
                    booking_date=date,
                    start_time=start_time,
                    end_time=end_time,
                    status=initial_status,
                    guest_parking_slot=guest_parking_slot or "",
                )
        except IntegrityError:
            logger.warning("Concurrent booking for amenity %s on %s at %s lost the race.", amenity_id, date, start_time)
            raise SlotUnavailable()
        return booking

    @transaction.atomic
    def update_booking_status(self, booking_id, new_status, reason=None):
        booking = self.get_booking(booking_id, lock=True)
        assert_transition(booking.status, new_status)
        booking.status = new_status
        fields = ["status", "updated_at"]
        if reason is not None:
            booking.rejection_reason = reason
            fields.append("rejection_reason")
        try:
            with transaction.atomic():
                booking.save(update_fields=fields)
        except IntegrityError:
            raise SlotUnavailable()
        return booking

    def complete_elapsed(self, today):
        """Mark confirmed bookings dated before ``today`` as completed."""
        return Booking.objects.filter(
            status=BookingStatus.CONFIRMED,
            booking_date__lt=today,
        ).update(status=BookingStatus.COMPLETED, updated_at=timezone.now())


gateway = BookingGateway()
