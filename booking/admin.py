from django import forms
from django.contrib import admin, messages

from . import lifecycle, services
from .exceptions import BookingError
from .models import Amenity, Booking, BookingStatus


@admin.register(Amenity)
class AmenityAdmin(admin.ModelAdmin):
    list_display = ('name', 'type', 'location', 'capacity', 'is_active')
    list_filter = ('type', 'is_active')
    search_fields = ('name', 'location')
    list_editable = ('is_active',)


class BookingAddForm(forms.ModelForm):
    """Admin-made bookings go through the same slot guards as the booking API."""

    class Meta:
        model = Booking
        fields = ('amenity', 'user', 'booking_date', 'start_time')

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['amenity'].queryset = Amenity.objects.filter(is_active=True)

    def clean(self):
        cleaned_data = super().clean()
        amenity = cleaned_data.get('amenity')
        user = cleaned_data.get('user')
        booking_date = cleaned_data.get('booking_date')
        start_time = cleaned_data.get('start_time')
        if None in (amenity, user, booking_date, start_time):
            return cleaned_data

        try:
            slot = services.check_slot_request(amenity, user, booking_date, start_time, as_admin=True)
        except BookingError as exc:
            raise forms.ValidationError(exc.detail, code=exc.error_type)
        # Full-day amenities are stored as 00:00-23:59 whatever hour was picked.
        self.instance.end_time = slot.end_time
        return cleaned_data


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'amenity', 'booking_date', 'start_time', 'end_time', 'status', 'created_at')
    list_filter = ('status', 'amenity__type', 'booking_date')
    search_fields = ('user__username', 'user__resident__unit_number', 'amenity__name', 'rejection_reason')
    date_hierarchy = 'booking_date'
    readonly_fields = ('status', 'created_at', 'updated_at')
    slot_fields = ('amenity', 'user', 'booking_date', 'start_time', 'end_time', 'guest_parking_slot')
    actions = ('approve_selected', 'reject_selected')

    def get_form(self, request, obj=None, **kwargs):
        if obj is None:
            kwargs['form'] = BookingAddForm
        return super().get_form(request, obj, **kwargs)

    def get_fields(self, request, obj=None):
        if obj is None:
            return BookingAddForm.Meta.fields
        return super().get_fields(request, obj)

    def get_readonly_fields(self, request, obj=None):
        if obj is None:
            return ()
        fields = self.readonly_fields + self.slot_fields
        if lifecycle.is_terminal(obj.status):
            fields += ('rejection_reason',)
        return fields

    def save_model(self, request, obj, form, change):
        if change:
            super().save_model(request, obj, form, change)
            return
        booking = services.request_booking(
            request.user, obj.amenity_id, obj.booking_date, obj.start_time, on_behalf_of=obj.user,
        )
        for field in ('id', 'start_time', 'end_time', 'status', 'guest_parking_slot', 'created_at', 'updated_at'):
            setattr(obj, field, getattr(booking, field))

    def _run(self, request, queryset, transition, verb):
        done = 0
        for booking in queryset.filter(status=BookingStatus.PENDING):
            try:
                transition(booking.pk, request.user)
                done += 1
            except BookingError as exc:
                self.message_user(request, f"{booking}: {exc.detail}", level=messages.WARNING)
        self.message_user(request, f"{done} booking(s) {verb}.")

    @admin.action(description="Approve selected pending bookings")
    def approve_selected(self, request, queryset):
        self._run(request, queryset, services.approve_booking, "approved")

    @admin.action(description="Reject selected pending bookings")
    def reject_selected(self, request, queryset):
        self._run(request, queryset, services.reject_booking, "rejected")
