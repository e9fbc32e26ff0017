import os
import tempfile
from datetime import date, time, timedelta
from io import StringIO
from types import SimpleNamespace
from unittest import mock

import pandas as pd
from django.contrib.admin import site as admin_site
from django.contrib.auth.models import User
from django.core.exceptions import PermissionDenied
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from . import lifecycle, services
from .availability import NO_SLOTS_MESSAGE, resolve
from .exceptions import (
    ConsecutiveDayLimitExceeded,
    DuplicateBooking,
    InvalidTransition,
    SlotUnavailable,
    UnknownAmenityType,
)
from .gateway import gateway
from .limits import active_dates, longest_run, would_exceed_limit
from .models import Amenity, AmenityType, Booking, BookingStatus
from .slots import FULL_DAY_END, FULL_DAY_START, find_slot, generate_slots, has_slot_grid, reservable_slots

GRID_TYPES = [
    AmenityType.SWIMMING_POOL,
    AmenityType.POOL_TABLE,
    AmenityType.GYM,
    AmenityType.PARTY_HALL,
    AmenityType.GUEST_PARKING,
]


def fake_booking(start, status="confirmed", amenity_id="pool-1", day=date(2024, 6, 1), first="Asha", last="Rao", unit="A-101"):
    user = SimpleNamespace(first_name=first, last_name=last, username="asha",
                           resident=SimpleNamespace(unit_number=unit))
    return SimpleNamespace(
        id=f"b-{start}", amenity_id=amenity_id, booking_date=day,
        start_time=start, status=status, user=user,
    )


class SlotGeneratorTests(SimpleTestCase):
    def test_swimming_pool_grid(self):
        slots = generate_slots(AmenityType.SWIMMING_POOL, date(2024, 6, 1))
        self.assertEqual([s.start_time.hour for s in slots], [6, 7, 8, 9, 18, 19, 20, 21])
        self.assertTrue(all(s.end_time.hour == s.start_time.hour + 1 for s in slots))
        self.assertEqual(slots[0].label, "6:00 AM - 7:00 AM")

    def test_pool_table_grid(self):
        slots = generate_slots("pool_table")
        self.assertEqual(len(slots), 12)
        self.assertEqual(slots[0].start_time, time(9, 0))
        self.assertEqual(slots[-1].end_time, time(21, 0))

    def test_gym_grid_is_two_hourly(self):
        slots = generate_slots(AmenityType.GYM)
        self.assertEqual(len(slots), 9)
        self.assertEqual((slots[0].start_time, slots[0].end_time), (time(5, 0), time(7, 0)))
        self.assertEqual((slots[-1].start_time, slots[-1].end_time), (time(21, 0), time(23, 0)))

    def test_party_hall_single_full_day_slot(self):
        slots = generate_slots(AmenityType.PARTY_HALL)
        self.assertEqual(len(slots), 1)
        self.assertEqual((slots[0].start_time, slots[0].end_time), (FULL_DAY_START, FULL_DAY_END))
        self.assertEqual(slots[0].label, "Full Day Booking")

    def test_guest_parking_display_options(self):
        slots = generate_slots(AmenityType.GUEST_PARKING)
        self.assertEqual(len(slots), 24)
        self.assertEqual(slots[0].start_time, time(0, 0))
        self.assertEqual(slots[23].start_time, time(23, 0))
        self.assertEqual(slots[13].label, "1:00 PM - 24 hours")

    def test_unknown_types_have_no_slots(self):
        self.assertEqual(generate_slots(AmenityType.OTHER), [])
        self.assertEqual(generate_slots("tennis_court"), [])
        self.assertFalse(has_slot_grid("tennis_court"))

    def test_grids_are_ordered_with_unique_starts(self):
        for amenity_type in GRID_TYPES:
            starts = [s.start_time for s in generate_slots(amenity_type)]
            self.assertEqual(starts, sorted(starts), amenity_type)
            self.assertEqual(len(starts), len(set(starts)), amenity_type)

    def test_grid_does_not_depend_on_date(self):
        self.assertEqual(generate_slots("gym", date(2024, 1, 1)), generate_slots("gym", date(2024, 12, 25)))

    def test_full_day_types_collapse_to_one_reservable_slot(self):
        parking = reservable_slots(AmenityType.GUEST_PARKING)
        self.assertEqual(len(parking), 1)
        self.assertEqual(parking[0].label, "Full Day (24 hours)")
        self.assertEqual(reservable_slots("swimming_pool"), generate_slots("swimming_pool"))

    def test_find_slot(self):
        self.assertEqual(find_slot("gym", "07:00").end_time, time(9, 0))
        self.assertIsNone(find_slot("gym", "06:00"))
        self.assertEqual(find_slot("guest_parking", time(15, 0)).start_time, FULL_DAY_START)
        self.assertIsNone(find_slot("other", "10:00"))


class AvailabilityResolverTests(SimpleTestCase):
    day = date(2024, 6, 1)

    def test_swimming_pool_one_booked(self):
        result = resolve("pool-1", "swimming_pool", self.day, [fake_booking(time(6, 0))])
        self.assertEqual(len(result.available), 7)
        self.assertEqual(len(result.booked), 1)
        self.assertEqual(result.booked[0].start_time, time(6, 0))
        self.assertEqual(result.booked[0].end_time, time(7, 0))
        self.assertEqual(result.booked[0].booked_by_label, "Asha Rao")

    def test_owner_label_falls_back_to_unit(self):
        result = resolve("pool-1", "swimming_pool", self.day, [fake_booking(time(7, 0), first="", last="")])
        self.assertEqual(result.booked[0].booked_by_label, "A-101")

    def test_inactive_and_foreign_bookings_ignored(self):
        bookings = [
            fake_booking(time(6, 0), status="cancelled"),
            fake_booking(time(7, 0), status="rejected"),
            fake_booking(time(8, 0), amenity_id="pool-2"),
            fake_booking(time(9, 0), day=date(2024, 6, 2)),
        ]
        result = resolve("pool-1", "swimming_pool", self.day, bookings)
        self.assertEqual(len(result.available), 8)
        self.assertEqual(result.booked, [])

    def test_pending_counts_as_taken(self):
        result = resolve("pool-1", "gym", self.day, [fake_booking(time(21, 0), status="pending")])
        self.assertEqual([s.start_time for s in result.booked], [time(21, 0)])

    def test_party_hall_booked(self):
        result = resolve("hall", "party_hall", self.day, [fake_booking(FULL_DAY_START, amenity_id="hall")])
        self.assertEqual(result.available, [])
        self.assertEqual(len(result.booked), 1)
        self.assertEqual(result.booked[0].label, "Full Day Booking")

    def test_guest_parking_booked(self):
        result = resolve("park", "guest_parking", self.day, [fake_booking(FULL_DAY_START, amenity_id="park")])
        self.assertEqual(result.available, [])
        self.assertEqual(len(result.booked), 1)

    def test_partition_covers_grid_in_order(self):
        bookings = [fake_booking(time(h, 0)) for h in (10, 14, 20)]
        result = resolve("pool-1", "pool_table", self.day, bookings)
        self.assertEqual(len(result.available) + len(result.booked), len(generate_slots("pool_table")))
        starts = [s.start_time for s in result.available]
        self.assertEqual(starts, sorted(starts))
        self.assertEqual([s.start_time for s in result.booked], [time(10, 0), time(14, 0), time(20, 0)])

    def test_partition_for_every_grid(self):
        for amenity_type in GRID_TYPES:
            first = reservable_slots(amenity_type)[0].start_time
            for bookings in ([], [fake_booking(first)]):
                result = resolve("pool-1", amenity_type, self.day, bookings)
                self.assertEqual(len(result.available) + len(result.booked),
                                 len(reservable_slots(amenity_type)), amenity_type)
                self.assertEqual(len(result.booked), len(bookings), amenity_type)
                self.assertEqual(len(result.options), len(generate_slots(amenity_type)), amenity_type)
                if amenity_type != AmenityType.GUEST_PARKING:
                    self.assertEqual(len(result.available) + len(result.booked),
                                     len(generate_slots(amenity_type)), amenity_type)

    def test_options_follow_display_grid(self):
        result = resolve("pool-1", "swimming_pool", self.day, [fake_booking(time(7, 0))])
        self.assertEqual([o.start_time for o in result.options], [s.start_time for s in generate_slots("swimming_pool")])
        self.assertEqual([o.start_time for o in result.options if not o.free], [time(7, 0)])

    def test_guest_parking_options_share_the_day(self):
        free = resolve("park", "guest_parking", self.day, [])
        self.assertEqual(len(free.options), 24)
        self.assertTrue(all(o.free for o in free.options))
        self.assertEqual(free.options[15].start_time, time(15, 0))

        taken = resolve("park", "guest_parking", self.day, [fake_booking(FULL_DAY_START, amenity_id="park")])
        self.assertEqual(len(taken.options), 24)
        self.assertFalse(any(o.free for o in taken.options))

    def test_resolve_is_idempotent(self):
        bookings = [fake_booking(time(18, 0))]
        self.assertEqual(
            resolve("pool-1", "swimming_pool", self.day, bookings),
            resolve("pool-1", "swimming_pool", self.day, bookings),
        )

    def test_unknown_type_degrades_to_message(self):
        result = resolve("x", "other", self.day, [])
        self.assertEqual((result.available, result.booked), ([], []))
        self.assertEqual(result.message, NO_SLOTS_MESSAGE)


class ConsecutiveDayValidatorTests(SimpleTestCase):
    d = date(2024, 6, 1)

    def test_single_date_never_exceeds(self):
        self.assertFalse(would_exceed_limit([], self.d))

    def test_third_consecutive_day_exceeds(self):
        self.assertTrue(would_exceed_limit([self.d, self.d + timedelta(days=1)], self.d + timedelta(days=2)))

    def test_gap_breaks_the_streak(self):
        self.assertFalse(would_exceed_limit([self.d, self.d + timedelta(days=1)], self.d + timedelta(days=5)))

    def test_insertion_can_merge_two_runs(self):
        existing = [self.d, self.d + timedelta(days=2)]
        self.assertEqual(longest_run(existing, self.d + timedelta(days=1)), 3)

    def test_duplicates_and_order_do_not_matter(self):
        existing = [self.d + timedelta(days=1), self.d, self.d]
        self.assertEqual(longest_run(existing, self.d), 2)
        self.assertFalse(would_exceed_limit(existing, self.d))

    def test_custom_cap(self):
        existing = [self.d, self.d + timedelta(days=1)]
        self.assertFalse(would_exceed_limit(existing, self.d + timedelta(days=2), max_consecutive=3))

    def test_active_dates_skips_inactive(self):
        bookings = [
            SimpleNamespace(booking_date=self.d, status="confirmed"),
            SimpleNamespace(booking_date=self.d + timedelta(days=1), status="cancelled"),
            SimpleNamespace(booking_date=self.d + timedelta(days=2), status="pending"),
        ]
        self.assertEqual(active_dates(bookings), [self.d, self.d + timedelta(days=2)])


class BookingLifecycleTests(SimpleTestCase):
    def test_initial_status(self):
        self.assertEqual(lifecycle.initial_status(False), BookingStatus.PENDING)
        self.assertEqual(lifecycle.initial_status(True), BookingStatus.CONFIRMED)

    def test_allowed_events(self):
        self.assertEqual(lifecycle.next_status("pending", "approve"), "confirmed")
        self.assertEqual(lifecycle.next_status("pending", "reject"), "rejected")
        self.assertEqual(lifecycle.next_status("confirmed", "cancel"), "cancelled")
        self.assertEqual(lifecycle.next_status(BookingStatus.CONFIRMED, "complete"), "completed")

    def test_terminal_states_have_no_exits(self):
        for status in ("cancelled", "rejected", "completed"):
            self.assertTrue(lifecycle.is_terminal(status))
            for target in BookingStatus.values:
                self.assertFalse(lifecycle.can_transition(status, target))
        self.assertFalse(lifecycle.is_terminal("pending"))

    def test_illegal_event_raises(self):
        with self.assertRaises(InvalidTransition):
            lifecycle.next_status("confirmed", "approve")
        with self.assertRaises(InvalidTransition):
            lifecycle.next_status("pending", "cancel")
        with self.assertRaises(InvalidTransition):
            lifecycle.assert_transition("rejected", "confirmed")

    def test_unknown_event(self):
        with self.assertRaises(ValueError):
            lifecycle.next_status("pending", "archive")


class BookingBaseTest(TestCase):
    def setUp(self):
        self.resident = User.objects.create_user(username="asha", password="12345", first_name="Asha", last_name="Rao")
        self.resident.resident.unit_number = "A-101"
        self.resident.resident.save()
        self.neighbour = User.objects.create_user(username="ravi", password="12345")
        self.neighbour.resident.unit_number = "B-202"
        self.neighbour.resident.save()
        self.admin = User.objects.create_user(username="secretary", password="12345", is_staff=True)

        self.pool = Amenity.objects.create(name="Swimming Pool", type=AmenityType.SWIMMING_POOL, location="Podium")
        self.hall = Amenity.objects.create(name="Party Hall", type=AmenityType.PARTY_HALL)
        self.parking = Amenity.objects.create(name="Guest Parking", type=AmenityType.GUEST_PARKING)
        self.lounge = Amenity.objects.create(name="Reading Lounge", type=AmenityType.OTHER)
        self.day = timezone.localdate() + timedelta(days=7)

    def book(self, amenity, user, day=None, start=time(6, 0), end=time(7, 0), status=BookingStatus.CONFIRMED):
        return Booking.objects.create(
            amenity=amenity, user=user, booking_date=day or self.day,
            start_time=start, end_time=end, status=status,
        )


class BookingModelTests(BookingBaseTest):
    def test_amenity_str(self):
        self.assertEqual(str(self.pool), "Podium - Swimming Pool")
        self.assertEqual(str(self.hall), "Party Hall")

    def test_default_status_is_pending(self):
        booking = Booking.objects.create(amenity=self.pool, user=self.resident, booking_date=self.day,
                                         start_time=time(7, 0), end_time=time(8, 0))
        self.assertEqual(booking.status, BookingStatus.PENDING)
        self.assertTrue(booking.is_active)


class RequestBookingTests(BookingBaseTest):
    def test_resident_booking_is_pending(self):
        booking = services.request_booking(self.resident, self.pool.pk, self.day, "18:00")
        self.assertEqual(booking.status, BookingStatus.PENDING)
        self.assertEqual((booking.start_time, booking.end_time), (time(18, 0), time(19, 0)))

    def test_admin_booking_is_confirmed(self):
        booking = services.request_booking(self.admin, self.pool.pk, self.day, time(19, 0))
        self.assertEqual(booking.status, BookingStatus.CONFIRMED)

    def test_admin_can_book_for_resident(self):
        booking = services.request_booking(self.admin, self.pool.pk, self.day, "06:00", on_behalf_of=self.resident)
        self.assertEqual(booking.user, self.resident)
        self.assertEqual(booking.status, BookingStatus.CONFIRMED)

    def test_resident_cannot_book_for_someone_else(self):
        with self.assertRaises(PermissionDenied):
            services.request_booking(self.resident, self.pool.pk, self.day, "06:00", on_behalf_of=self.neighbour)

    def test_taken_slot_is_unavailable_and_nothing_is_saved(self):
        self.book(self.pool, self.neighbour)
        before = Booking.objects.count()
        with self.assertRaises(SlotUnavailable):
            services.request_booking(self.resident, self.pool.pk, self.day, "06:00")
        self.assertEqual(Booking.objects.count(), before)

    def test_pending_booking_also_holds_the_slot(self):
        self.book(self.pool, self.neighbour, status=BookingStatus.PENDING)
        with self.assertRaises(SlotUnavailable):
            services.request_booking(self.admin, self.pool.pk, self.day, "06:00")

    def test_cancelled_booking_frees_the_slot(self):
        self.book(self.pool, self.neighbour, status=BookingStatus.CANCELLED)
        booking = services.request_booking(self.resident, self.pool.pk, self.day, "06:00")
        self.assertEqual(booking.status, BookingStatus.PENDING)

    def test_off_grid_time_is_rejected(self):
        with self.assertRaises(SlotUnavailable):
            services.request_booking(self.resident, self.pool.pk, self.day, "12:00")

    def test_amenity_without_grid(self):
        with self.assertRaises(UnknownAmenityType):
            services.request_booking(self.resident, self.lounge.pk, self.day, "10:00")

    def test_inactive_amenity_not_found(self):
        self.pool.is_active = False
        self.pool.save()
        with self.assertRaises(Amenity.DoesNotExist):
            services.request_booking(self.resident, self.pool.pk, self.day, "06:00")

    def test_one_booking_per_amenity_per_day(self):
        services.request_booking(self.resident, self.pool.pk, self.day, "06:00")
        with self.assertRaises(DuplicateBooking):
            services.request_booking(self.resident, self.pool.pk, self.day, "07:00")

    @override_settings(BOOKING_ONE_PER_USER_PER_DAY=False)
    def test_one_per_day_rule_can_be_switched_off(self):
        services.request_booking(self.resident, self.pool.pk, self.day, "06:00")
        booking = services.request_booking(self.resident, self.pool.pk, self.day, "07:00")
        self.assertEqual(booking.start_time, time(7, 0))

    def test_party_hall_is_full_day(self):
        booking = services.request_booking(self.resident, self.hall.pk, self.day, "00:00")
        self.assertEqual((booking.start_time, booking.end_time), (FULL_DAY_START, FULL_DAY_END))
        with self.assertRaises(SlotUnavailable):
            services.request_booking(self.neighbour, self.hall.pk, self.day, "00:00")

    def test_guest_parking_hour_is_stored_as_full_day(self):
        booking = services.request_booking(self.resident, self.parking.pk, self.day, "15:00")
        self.assertEqual((booking.start_time, booking.end_time), (FULL_DAY_START, FULL_DAY_END))
        self.assertEqual(booking.guest_parking_slot, "15:00")
        with self.assertRaises(SlotUnavailable):
            services.request_booking(self.neighbour, self.parking.pk, self.day, "09:00")

    def test_guest_parking_third_consecutive_day_refused(self):
        self.book(self.parking, self.resident, day=self.day, start=FULL_DAY_START, end=FULL_DAY_END)
        self.book(self.parking, self.resident, day=self.day + timedelta(days=1), start=FULL_DAY_START, end=FULL_DAY_END)
        with self.assertRaises(ConsecutiveDayLimitExceeded) as ctx:
            services.request_booking(self.resident, self.parking.pk, self.day + timedelta(days=2), "10:00")
        self.assertEqual(ctx.exception.streak, 3)
        self.assertEqual(ctx.exception.limit, 2)

        booking = services.request_booking(self.resident, self.parking.pk, self.day + timedelta(days=4), "10:00")
        self.assertEqual(booking.status, BookingStatus.PENDING)

    def test_guest_parking_streak_ignores_cancelled_days(self):
        self.book(self.parking, self.resident, day=self.day, start=FULL_DAY_START, end=FULL_DAY_END)
        self.book(self.parking, self.resident, day=self.day + timedelta(days=1), start=FULL_DAY_START,
                  end=FULL_DAY_END, status=BookingStatus.CANCELLED)
        booking = services.request_booking(self.resident, self.parking.pk, self.day + timedelta(days=2), "10:00")
        self.assertEqual(booking.booking_date, self.day + timedelta(days=2))

    def test_guest_parking_streak_is_per_user(self):
        self.book(self.parking, self.neighbour, day=self.day, start=FULL_DAY_START, end=FULL_DAY_END)
        self.book(self.parking, self.neighbour, day=self.day + timedelta(days=1), start=FULL_DAY_START, end=FULL_DAY_END)
        booking = services.request_booking(self.resident, self.parking.pk, self.day + timedelta(days=2), "10:00")
        self.assertEqual(booking.user, self.resident)

    def test_admin_skips_consecutive_day_guard(self):
        self.book(self.parking, self.resident, day=self.day, start=FULL_DAY_START, end=FULL_DAY_END)
        self.book(self.parking, self.resident, day=self.day + timedelta(days=1), start=FULL_DAY_START, end=FULL_DAY_END)
        booking = services.request_booking(self.admin, self.parking.pk, self.day + timedelta(days=2), "00:00",
                                           on_behalf_of=self.resident)
        self.assertEqual(booking.status, BookingStatus.CONFIRMED)

    @override_settings(BOOKING_GUEST_PARKING_MAX_CONSECUTIVE_DAYS=3)
    def test_consecutive_cap_from_settings(self):
        self.book(self.parking, self.resident, day=self.day, start=FULL_DAY_START, end=FULL_DAY_END)
        self.book(self.parking, self.resident, day=self.day + timedelta(days=1), start=FULL_DAY_START, end=FULL_DAY_END)
        booking = services.request_booking(self.resident, self.parking.pk, self.day + timedelta(days=2), "10:00")
        self.assertEqual(booking.booking_date, self.day + timedelta(days=2))

    def test_check_consecutive_days_reports_streak(self):
        self.book(self.parking, self.resident, day=self.day, start=FULL_DAY_START, end=FULL_DAY_END)
        self.book(self.parking, self.resident, day=self.day + timedelta(days=2), start=FULL_DAY_START, end=FULL_DAY_END)
        with self.assertRaises(ConsecutiveDayLimitExceeded) as ctx:
            services.check_consecutive_days(self.resident.pk, self.day + timedelta(days=1))
        self.assertEqual(ctx.exception.streak, 3)

    def test_check_consecutive_days_decides_with_limit_check(self):
        self.book(self.parking, self.resident, day=self.day, start=FULL_DAY_START, end=FULL_DAY_END)
        self.book(self.parking, self.resident, day=self.day + timedelta(days=1), start=FULL_DAY_START, end=FULL_DAY_END)
        with mock.patch("booking.services.would_exceed_limit", return_value=False) as decide:
            services.check_consecutive_days(self.resident.pk, self.day + timedelta(days=2))
        decide.assert_called_once_with([self.day, self.day + timedelta(days=1)], self.day + timedelta(days=2), 2)

    def test_check_slot_request_returns_reservable_slot(self):
        slot = services.check_slot_request(self.parking, self.resident, self.day, "15:00")
        self.assertEqual((slot.start_time, slot.end_time), (FULL_DAY_START, FULL_DAY_END))
        self.assertFalse(Booking.objects.exists())


class BookingGatewayTests(BookingBaseTest):
    def test_list_bookings_returns_every_status(self):
        self.book(self.pool, self.resident, status=BookingStatus.CANCELLED)
        self.book(self.pool, self.neighbour, start=time(7, 0), end=time(8, 0))
        self.book(self.pool, self.neighbour, day=self.day + timedelta(days=1))
        self.assertEqual(len(gateway.list_bookings(self.pool.pk, self.day)), 2)

    def test_list_user_bookings_filters_by_type(self):
        self.book(self.pool, self.resident)
        self.book(self.parking, self.resident, start=FULL_DAY_START, end=FULL_DAY_END)
        bookings = gateway.list_user_bookings(self.resident.pk, AmenityType.GUEST_PARKING)
        self.assertEqual([b.amenity for b in bookings], [self.parking])

    def test_storage_constraint_stops_race(self):
        self.book(self.pool, self.neighbour)
        before = Booking.objects.count()
        # Simulate a stale pre-check: the unique constraint must still refuse the row.
        with mock.patch.object(gateway, "slot_taken", return_value=False):
            with self.assertRaises(SlotUnavailable):
                gateway.create_booking(self.pool.pk, self.resident.pk, self.day, time(6, 0), time(7, 0),
                                       BookingStatus.PENDING)
        self.assertEqual(Booking.objects.count(), before)

    def test_update_status_validates_transition(self):
        booking = self.book(self.pool, self.resident, status=BookingStatus.REJECTED)
        with self.assertRaises(InvalidTransition):
            gateway.update_booking_status(booking.pk, BookingStatus.CONFIRMED)

    def test_update_status_records_reason(self):
        booking = self.book(self.pool, self.resident, status=BookingStatus.PENDING)
        updated = gateway.update_booking_status(booking.pk, BookingStatus.REJECTED, reason="Maintenance")
        self.assertEqual(updated.rejection_reason, "Maintenance")


class BookingTransitionTests(BookingBaseTest):
    def test_admin_approves_pending(self):
        booking = self.book(self.pool, self.resident, status=BookingStatus.PENDING)
        booking = services.approve_booking(booking.pk, self.admin)
        self.assertEqual(booking.status, BookingStatus.CONFIRMED)

    def test_resident_cannot_approve(self):
        booking = self.book(self.pool, self.resident, status=BookingStatus.PENDING)
        with self.assertRaises(PermissionDenied):
            services.approve_booking(booking.pk, self.resident)

    def test_cannot_approve_confirmed(self):
        booking = self.book(self.pool, self.resident)
        with self.assertRaises(InvalidTransition):
            services.approve_booking(booking.pk, self.admin)

    def test_approve_missing_booking(self):
        booking = self.book(self.pool, self.resident, status=BookingStatus.PENDING)
        booking_id = booking.pk
        booking.delete()
        with self.assertRaises(Booking.DoesNotExist):
            services.approve_booking(booking_id, self.admin)

    def test_reject_frees_slot(self):
        booking = self.book(self.pool, self.resident, status=BookingStatus.PENDING)
        booking = services.reject_booking(booking.pk, self.admin, "  Pool closed for cleaning ")
        self.assertEqual(booking.status, BookingStatus.REJECTED)
        self.assertEqual(booking.rejection_reason, "Pool closed for cleaning")
        again = services.request_booking(self.neighbour, self.pool.pk, self.day, "06:00")
        self.assertEqual(again.status, BookingStatus.PENDING)

    def test_owner_cancels_confirmed(self):
        booking = self.book(self.pool, self.resident)
        booking = services.cancel_booking(booking.pk, self.resident)
        self.assertEqual(booking.status, BookingStatus.CANCELLED)
        self.assertFalse(gateway.slot_taken(self.pool.pk, self.day, time(6, 0)))

    def test_admin_cancels_for_resident(self):
        booking = self.book(self.pool, self.resident)
        self.assertEqual(services.cancel_booking(booking.pk, self.admin).status, BookingStatus.CANCELLED)

    def test_other_resident_cannot_cancel(self):
        booking = self.book(self.pool, self.resident)
        with self.assertRaises(PermissionDenied):
            services.cancel_booking(booking.pk, self.neighbour)

    def test_cannot_cancel_after_date_passed(self):
        booking = self.book(self.pool, self.resident)
        with self.assertRaises(InvalidTransition):
            services.cancel_booking(booking.pk, self.resident, today=self.day + timedelta(days=1))

    def test_can_cancel_on_the_day(self):
        booking = self.book(self.pool, self.resident)
        booking = services.cancel_booking(booking.pk, self.resident, today=self.day)
        self.assertEqual(booking.status, BookingStatus.CANCELLED)

    def test_terminal_states_stay_put(self):
        booking = self.book(self.pool, self.resident, status=BookingStatus.CANCELLED)
        with self.assertRaises(InvalidTransition):
            services.cancel_booking(booking.pk, self.resident)
        with self.assertRaises(InvalidTransition):
            services.approve_booking(booking.pk, self.admin)

    def test_complete_elapsed_bookings(self):
        past = self.book(self.pool, self.resident)
        pending = self.book(self.hall, self.resident, status=BookingStatus.PENDING, start=FULL_DAY_START, end=FULL_DAY_END)
        future = self.book(self.pool, self.neighbour, day=self.day + timedelta(days=3))
        count = services.complete_elapsed_bookings(today=self.day + timedelta(days=1))
        self.assertEqual(count, 1)
        past.refresh_from_db()
        pending.refresh_from_db()
        future.refresh_from_db()
        self.assertEqual(past.status, BookingStatus.COMPLETED)
        self.assertEqual(pending.status, BookingStatus.PENDING)
        self.assertEqual(future.status, BookingStatus.CONFIRMED)

    def test_booking_report(self):
        self.book(self.pool, self.resident)
        self.book(self.pool, self.neighbour, start=time(7, 0), end=time(8, 0), status=BookingStatus.PENDING)
        self.book(self.hall, self.resident, start=FULL_DAY_START, end=FULL_DAY_END, status=BookingStatus.CANCELLED)
        report = services.booking_report()
        self.assertEqual(report["totals"]["total"], 3)
        self.assertEqual(report["totals"]["active"], 2)
        self.assertEqual(report["totals"]["cancelled"], 1)
        self.assertEqual(report["by_amenity"][0]["name"], "Swimming Pool")
        self.assertEqual(report["by_amenity"][0]["total"], 2)


class BookingViewTests(BookingBaseTest):
    def setUp(self):
        super().setUp()
        self.api_client = APIClient()
        self.api_client.force_authenticate(user=self.resident)

    def test_requires_login(self):
        res = APIClient().get(reverse("booking:amenities"))
        self.assertIn(res.status_code, (401, 403))

    def test_amenity_list(self):
        res = self.api_client.get(reverse("booking:amenities"))
        self.assertEqual(res.status_code, 200)
        self.assertEqual(len(res.data), 4)

    def test_availability_bad_request(self):
        res = self.api_client.get(reverse("booking:availability"))
        self.assertEqual(res.status_code, 400)

    def test_availability_unknown_amenity(self):
        res = self.api_client.get(reverse("booking:availability"),
                                  {"amenity": "00000000-0000-0000-0000-000000000000", "date": self.day.isoformat()})
        self.assertEqual(res.status_code, 404)

    def test_availability_partition(self):
        self.book(self.pool, self.neighbour)
        res = self.api_client.get(reverse("booking:availability"),
                                  {"amenity": str(self.pool.pk), "date": self.day.isoformat()})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(len(res.data["available"]), 7)
        self.assertEqual(res.data["available"][0]["start_time"], "07:00")
        self.assertEqual(res.data["booked"][0]["start_time"], "06:00")
        self.assertEqual(res.data["booked"][0]["booked_by_label"], "B-202")

    def test_availability_without_grid(self):
        res = self.api_client.get(reverse("booking:availability"),
                                  {"amenity": str(self.lounge.pk), "date": self.day.isoformat()})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["available"], [])
        self.assertEqual(res.data["message"], NO_SLOTS_MESSAGE)

    def test_availability_lists_guest_parking_hours(self):
        res = self.api_client.get(reverse("booking:availability"),
                                  {"amenity": str(self.parking.pk), "date": self.day.isoformat()})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(len(res.data["options"]), 24)
        self.assertEqual(res.data["options"][15]["start_time"], "15:00")
        self.assertTrue(res.data["options"][15]["free"])
        self.assertEqual([s["start_time"] for s in res.data["available"]], ["00:00"])

    def test_guest_parking_hour_from_options_is_booked(self):
        data = {"amenity_id": str(self.parking.pk), "booking_date": self.day.isoformat(), "start_time": "15:00"}
        res = self.api_client.post(reverse("booking:book"), data, format="json")
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["guest_parking_slot"], "15:00")
        self.assertEqual(res.data["time_label"], "Full day from 15:00")

        res = self.api_client.get(reverse("booking:availability"),
                                  {"amenity": str(self.parking.pk), "date": self.day.isoformat()})
        self.assertFalse(any(o["free"] for o in res.data["options"]))

    def test_create_booking(self):
        data = {"amenity_id": str(self.pool.pk), "booking_date": self.day.isoformat(), "start_time": "08:00"}
        res = self.api_client.post(reverse("booking:book"), data, format="json")
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["status"], "pending")
        self.assertEqual(res.data["start_time"], "08:00")
        self.assertEqual(res.data["end_time"], "09:00")
        self.assertTrue(Booking.objects.filter(pk=res.data["id"]).exists())

    def test_create_booking_conflict(self):
        self.book(self.pool, self.neighbour)
        data = {"amenity_id": str(self.pool.pk), "booking_date": self.day.isoformat(), "start_time": "06:00"}
        res = self.api_client.post(reverse("booking:book"), data, format="json")
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["error_type"], "slot_already_booked")

    def test_create_booking_consecutive_limit(self):
        for offset in (0, 1):
            self.book(self.parking, self.resident, day=self.day + timedelta(days=offset),
                      start=FULL_DAY_START, end=FULL_DAY_END)
        data = {"amenity_id": str(self.parking.pk),
                "booking_date": (self.day + timedelta(days=2)).isoformat(), "start_time": "09:00"}
        res = self.api_client.post(reverse("booking:book"), data, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error_type"], "consecutive_days_limit")
        self.assertEqual(res.data["streak"], 3)

    def test_create_booking_past_date(self):
        data = {"amenity_id": str(self.pool.pk),
                "booking_date": (timezone.localdate() - timedelta(days=1)).isoformat(), "start_time": "06:00"}
        res = self.api_client.post(reverse("booking:book"), data, format="json")
        self.assertEqual(res.status_code, 400)

    def test_create_booking_unknown_amenity(self):
        data = {"amenity_id": "00000000-0000-0000-0000-000000000000",
                "booking_date": self.day.isoformat(), "start_time": "06:00"}
        res = self.api_client.post(reverse("booking:book"), data, format="json")
        self.assertEqual(res.status_code, 404)

    def test_create_booking_on_behalf_requires_admin(self):
        data = {"amenity_id": str(self.pool.pk), "booking_date": self.day.isoformat(),
                "start_time": "06:00", "user_id": self.neighbour.pk}
        res = self.api_client.post(reverse("booking:book"), data, format="json")
        self.assertEqual(res.status_code, 403)

    def test_my_bookings_lists_pending_first(self):
        self.book(self.pool, self.resident, day=self.day + timedelta(days=2))
        self.book(self.hall, self.resident, start=FULL_DAY_START, end=FULL_DAY_END, status=BookingStatus.PENDING)
        self.book(self.pool, self.neighbour)
        res = self.api_client.get(reverse("booking:mine_api"))
        self.assertEqual(res.status_code, 200)
        self.assertEqual(len(res.data), 2)
        self.assertEqual(res.data[0]["status"], "pending")

    def test_admin_sees_all_bookings(self):
        self.book(self.pool, self.resident)
        self.book(self.pool, self.neighbour, start=time(7, 0), end=time(8, 0))
        self.api_client.force_authenticate(user=self.admin)
        res = self.api_client.get(reverse("booking:mine_api"))
        self.assertEqual(len(res.data), 2)

    def test_cancel_booking(self):
        booking = self.book(self.pool, self.resident)
        res = self.api_client.post(reverse("booking:booking-cancel", args=[booking.id]))
        self.assertEqual(res.status_code, 200)
        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.CANCELLED)

    def test_cancel_pending_is_invalid(self):
        booking = self.book(self.pool, self.resident, status=BookingStatus.PENDING)
        res = self.api_client.post(reverse("booking:booking-cancel", args=[booking.id]))
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error_type"], "invalid_transition")

    def test_approve_requires_admin(self):
        booking = self.book(self.pool, self.resident, status=BookingStatus.PENDING)
        res = self.api_client.post(reverse("booking:booking-approve", args=[booking.id]))
        self.assertEqual(res.status_code, 403)

    def test_admin_approve_and_reject(self):
        first = self.book(self.pool, self.resident, status=BookingStatus.PENDING)
        second = self.book(self.pool, self.neighbour, start=time(7, 0), end=time(8, 0), status=BookingStatus.PENDING)
        self.api_client.force_authenticate(user=self.admin)

        res = self.api_client.post(reverse("booking:booking-approve", args=[first.id]))
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "confirmed")

        res = self.api_client.post(reverse("booking:booking-reject", args=[second.id]), {"reason": "Full"}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "rejected")
        self.assertEqual(res.data["rejection_reason"], "Full")

    def test_transition_missing_booking(self):
        self.api_client.force_authenticate(user=self.admin)
        res = self.api_client.post(reverse("booking:booking-approve", args=["00000000-0000-0000-0000-000000000000"]))
        self.assertEqual(res.status_code, 404)

    def test_reports_admin_only(self):
        res = self.api_client.get(reverse("booking:reports"))
        self.assertEqual(res.status_code, 403)
        self.api_client.force_authenticate(user=self.admin)
        res = self.api_client.get(reverse("booking:reports"))
        self.assertEqual(res.status_code, 200)
        self.assertIn("totals", res.data)

    def test_pages_render(self):
        self.client.login(username="asha", password="12345")
        res = self.client.get(reverse("booking:page"))
        self.assertEqual(res.status_code, 200)
        self.assertTemplateUsed(res, "booking/booking_form.html")
        res = self.client.get(reverse("booking:mine_page"))
        self.assertEqual(res.status_code, 200)
        self.assertTemplateUsed(res, "booking/my_bookings.html")

    def test_pages_require_login(self):
        res = self.client.get(reverse("booking:page"))
        self.assertEqual(res.status_code, 302)


class BookingAdminTests(BookingBaseTest):
    def setUp(self):
        super().setUp()
        self.superuser = User.objects.create_superuser(username="chairman", password="12345", email="c@example.com")
        self.client.force_login(self.superuser)
        self.add_url = reverse("admin:booking_booking_add")

    def add_data(self, amenity, start="15:00"):
        return {
            "amenity": amenity.pk,
            "user": self.resident.pk,
            "booking_date": self.day.isoformat(),
            "start_time": start,
        }

    def test_add_goes_through_slot_guard(self):
        self.book(self.parking, self.neighbour, start=FULL_DAY_START, end=FULL_DAY_END)
        res = self.client.post(self.add_url, self.add_data(self.parking))
        self.assertEqual(res.status_code, 200)
        self.assertContains(res, "already booked")
        self.assertEqual(Booking.objects.filter(amenity=self.parking, status__in=["pending", "confirmed"]).count(), 1)

    def test_add_rejects_off_grid_time(self):
        res = self.client.post(self.add_url, self.add_data(self.pool, start="12:00"))
        self.assertEqual(res.status_code, 200)
        self.assertFalse(Booking.objects.exists())

    def test_add_creates_confirmed_full_day_booking(self):
        res = self.client.post(self.add_url, self.add_data(self.parking))
        self.assertEqual(res.status_code, 302)
        booking = Booking.objects.get(amenity=self.parking)
        self.assertEqual(booking.user, self.resident)
        self.assertEqual(booking.status, BookingStatus.CONFIRMED)
        self.assertEqual((booking.start_time, booking.end_time), (FULL_DAY_START, FULL_DAY_END))
        self.assertEqual(booking.guest_parking_slot, "15:00")

    def test_change_form_keeps_slot_fields(self):
        booking = self.book(self.pool, self.resident, status=BookingStatus.PENDING)
        url = reverse("admin:booking_booking_change", args=[booking.pk])
        res = self.client.post(url, {"start_time": "18:00", "end_time": "19:00", "rejection_reason": "note"})
        self.assertEqual(res.status_code, 302)
        booking.refresh_from_db()
        self.assertEqual(booking.start_time, time(6, 0))
        self.assertEqual(booking.rejection_reason, "note")

    def test_finished_booking_reason_is_read_only(self):
        booking = self.book(self.pool, self.resident, status=BookingStatus.REJECTED)
        model_admin = admin_site.get_model_admin(Booking)
        self.assertIn("rejection_reason", model_admin.get_readonly_fields(None, booking))
        self.assertNotIn("rejection_reason", model_admin.get_readonly_fields(None, self.book(self.hall, self.resident)))

    def test_my_bookings_page_marks_cancellable(self):
        confirmed = self.book(self.pool, self.resident)
        pending = self.book(self.hall, self.resident, status=BookingStatus.PENDING,
                            start=FULL_DAY_START, end=FULL_DAY_END)
        self.client.force_login(self.resident)
        res = self.client.get(reverse("booking:mine_page"))
        flags = {b.pk: b.can_cancel for b in res.context["items"]}
        self.assertTrue(flags[confirmed.pk])
        self.assertFalse(flags[pending.pk])


class ManagementCommandTests(BookingBaseTest):
    def test_seed_amenities_is_idempotent(self):
        call_command("seed_amenities", stdout=StringIO())
        count = Amenity.objects.count()
        call_command("seed_amenities", stdout=StringIO())
        self.assertEqual(Amenity.objects.count(), count)
        self.assertTrue(Amenity.objects.filter(type=AmenityType.GYM).exists())

    def test_complete_bookings_command(self):
        booking = self.book(self.pool, self.resident)
        out = StringIO()
        call_command("complete_bookings", "--date", (self.day + timedelta(days=1)).isoformat(), stdout=out)
        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.COMPLETED)
        self.assertIn("1 booking(s)", out.getvalue())

    def test_export_bookings_csv(self):
        self.book(self.pool, self.resident)
        self.book(self.pool, self.neighbour, start=time(7, 0), end=time(8, 0), status=BookingStatus.CANCELLED)
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "bookings.csv")
            call_command("export_bookings", "--output", path, "--status", "confirmed", stdout=StringIO())
            df = pd.read_csv(path)
        self.assertEqual(len(df), 1)
        self.assertEqual(df.iloc[0]["Booked By"], "Asha Rao")
        self.assertEqual(df.iloc[0]["Start"], "06:00")
