import uuid
from django.conf import settings
from django.db import models
from django.db.models import F, Q


class AmenityType(models.TextChoices):
    SWIMMING_POOL = "swimming_pool", "Swimming Pool"
    POOL_TABLE = "pool_table", "Pool Table"
    PARTY_HALL = "party_hall", "Party Hall"
    GUEST_PARKING = "guest_parking", "Guest Parking"
    GYM = "gym", "Gym"
    OTHER = "other", "Other"


class Amenity(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    type = models.CharField(max_length=20, choices=AmenityType.choices, default=AmenityType.OTHER)
    location = models.CharField(max_length=120, blank=True)
    description = models.TextField(blank=True)
    capacity = models.PositiveIntegerField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "amenities"

    def __str__(self):
        if self.location:
            return f"{self.location} - {self.name}"
        return self.name


class BookingStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    CANCELLED = "cancelled", "Cancelled"
    REJECTED = "rejected", "Rejected"
    COMPLETED = "completed", "Completed"


ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


class Booking(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="bookings")
    amenity = models.ForeignKey(Amenity, on_delete=models.PROTECT, related_name="bookings")
    booking_date = models.DateField(db_index=True)
    start_time = models.TimeField()
    end_time = models.TimeField()
    status = models.CharField(max_length=10, choices=BookingStatus.choices, default=BookingStatus.PENDING)
    rejection_reason = models.TextField(blank=True)
    # Hour picked by a guest-parking requester; the stored interval is always the full day.
    guest_parking_slot = models.CharField(max_length=5, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-booking_date", "start_time"]
        indexes = [
            models.Index(fields=["amenity", "booking_date", "status"], name="booking_amenity_date_idx"),
            models.Index(fields=["user", "status"], name="booking_user_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["amenity", "booking_date", "start_time"],
                condition=Q(status__in=["pending", "confirmed"]),
                name="uniq_active_booking_slot",
            ),
            models.CheckConstraint(
                condition=Q(end_time__gt=F("start_time")),
                name="booking_end_after_start",
            ),
        ]

    def __str__(self):
        return f"{self.amenity.name} on {self.booking_date:%Y-%m-%d} {self.start_time:%H:%M}-{self.end_time:%H:%M} ({self.status})"

    @property
    def is_active(self):
        return self.status in ACTIVE_STATUSES
