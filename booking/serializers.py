# booking/serializers.py
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework import serializers

from accounts.models import display_label

from .models import Amenity, Booking
from .slots import format_time


class AmenitySerializer(serializers.ModelSerializer):
    class Meta:
        model = Amenity
        fields = ("id", "name", "type", "location", "description", "capacity")


class SlotSerializer(serializers.Serializer):
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()
    label = serializers.CharField()


class BookedSlotSerializer(SlotSerializer):
    booked_by_label = serializers.CharField()
    booking_id = serializers.UUIDField()


class SlotOptionSerializer(SlotSerializer):
    free = serializers.BooleanField()


class AvailabilityQuerySerializer(serializers.Serializer):
    amenity = serializers.UUIDField()
    date = serializers.DateField()


class BookingCreateSerializer(serializers.Serializer):
    amenity_id = serializers.UUIDField()
    booking_date = serializers.DateField()
    start_time = serializers.TimeField(input_formats=["%H:%M", "%H:%M:%S"])
    # only honoured for society admins booking on behalf of a resident
    user_id = serializers.IntegerField(required=False)

    def validate_booking_date(self, value):
        if value < timezone.localdate():
            raise serializers.ValidationError("Booking date cannot be in the past.")
        return value

    def validate_user_id(self, value):
        User = get_user_model()
        try:
            return User.objects.get(pk=value)
        except User.DoesNotExist:
            raise serializers.ValidationError("Resident not found.")


class BookingRejectSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)


class BookingSerializer(serializers.ModelSerializer):
    amenity = AmenitySerializer(read_only=True)
    booked_by = serializers.SerializerMethodField()
    unit_number = serializers.SerializerMethodField()
    time_label = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = (
            "id", "amenity", "booking_date", "start_time", "end_time", "time_label",
            "status", "rejection_reason", "guest_parking_slot",
            "booked_by", "unit_number", "created_at",
        )
        read_only_fields = fields

    def get_booked_by(self, obj):
        return display_label(obj.user)

    def get_unit_number(self, obj):
        resident = getattr(obj.user, "resident", None)
        return resident.unit_number if resident else ""

    def get_time_label(self, obj):
        if obj.guest_parking_slot:
            return f"Full day from {obj.guest_parking_slot}"
        return f"{format_time(obj.start_time)} - {format_time(obj.end_time)}"
