import logging

from django.contrib.auth.decorators import login_required
from django.core.exceptions import PermissionDenied
from django.db.models import Case, IntegerField, Value, When
from django.shortcuts import redirect, render
from django.utils import timezone
from rest_framework import permissions, status, views
from rest_framework.response import Response

from accounts.models import is_society_admin

from . import lifecycle, services
from .availability import resolve
from .exceptions import BookingError
from .gateway import gateway
from .models import Amenity, Booking, BookingStatus
from .serializers import (
    AmenitySerializer,
    AvailabilityQuerySerializer,
    BookedSlotSerializer,
    BookingCreateSerializer,
    BookingRejectSerializer,
    BookingSerializer,
    SlotOptionSerializer,
    SlotSerializer,
)

logger = logging.getLogger(__name__)


def booking_error_response(exc):
    return Response(exc.as_dict(), status=exc.status_code)


def not_found(what):
    return Response({"detail": f"{what} not found", "error_type": "not_found"}, status=status.HTTP_404_NOT_FOUND)


def forbidden(exc):
    return Response({"detail": str(exc) or "forbidden", "error_type": "forbidden"}, status=status.HTTP_403_FORBIDDEN)


class IsSocietyAdmin(permissions.BasePermission):
    message = "Only admins can do this."

    def has_permission(self, request, view):
        return is_society_admin(request.user)


@login_required
def booking_page(request):
    amenities = Amenity.objects.filter(is_active=True)
    return render(request, "booking/booking_form.html", {
        "amenities": amenities,
        "today": timezone.localdate(),
    })


@login_required
def my_bookings_page(request):
    items = list(_bookings_for(request.user))
    today = timezone.localdate()
    for b in items:
        b.can_cancel = lifecycle.can_transition(b.status, lifecycle.CANCELLED) and b.booking_date >= today
    return render(request, "booking/my_bookings.html", {
        "items": items,
        "is_admin": is_society_admin(request.user),
    })


def _bookings_for(user):
    if is_society_admin(user):
        base_query = Booking.objects.all()
    else:
        base_query = Booking.objects.filter(user=user)

    return (
        base_query
        .select_related("amenity", "user", "user__resident")
        .annotate(
            status_prio=Case(
                When(status=BookingStatus.PENDING, then=Value(0)),
                default=Value(1),
                output_field=IntegerField(),
            )
        )
        .order_by("status_prio", "-booking_date", "start_time")
    )


class AmenityListView(views.APIView):

    def get(self, request):
        qs = Amenity.objects.filter(is_active=True)
        return Response(AmenitySerializer(qs, many=True).data, status=200)


class AvailabilityView(views.APIView):

    def get(self, request):
        query = AvailabilityQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response({"detail": "missing or bad amenity/date", "errors": query.errors},
                            status=status.HTTP_400_BAD_REQUEST)

        amenity_id = query.validated_data["amenity"]
        day = query.validated_data["date"]
        try:
            amenity = gateway.get_amenity(amenity_id)
        except Amenity.DoesNotExist:
            return not_found("amenity")

        result = resolve(amenity.pk, amenity.type, day, gateway.list_bookings(amenity.pk, day))
        return Response({
            "amenity": AmenitySerializer(amenity).data,
            "date": day.isoformat(),
            "available": SlotSerializer(result.available, many=True).data,
            "booked": BookedSlotSerializer(result.booked, many=True).data,
            "options": SlotOptionSerializer(result.options, many=True).data,
            "message": result.message,
        }, status=200)


class BookingCreateView(views.APIView):

    def post(self, request):
        serializer = BookingCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({"detail": "bad booking data", "errors": serializer.errors}, status=400)
        data = serializer.validated_data

        try:
            booking = services.request_booking(
                request.user,
                data["amenity_id"],
                data["booking_date"],
                data["start_time"],
                on_behalf_of=data.get("user_id"),
            )
        except Amenity.DoesNotExist:
            return not_found("amenity")
        except PermissionDenied as exc:
            return forbidden(exc)
        except BookingError as exc:
            return booking_error_response(exc)

        if booking.status == BookingStatus.CONFIRMED:
            message = "Booking confirmed successfully"
        else:
            message = "Booking request submitted. Awaiting admin approval."
        return Response({**BookingSerializer(booking).data, "message": message}, status=201)


class MyBookingAPI(views.APIView):

    def get(self, request):
        return Response(BookingSerializer(_bookings_for(request.user), many=True).data, status=200)


class BookingTransitionView(views.APIView):
    """Base for the approve/reject/cancel endpoints; subclasses implement ``apply``."""

    def apply(self, request, pk):
        raise NotImplementedError

    def post(self, request, pk):
        try:
            booking = self.apply(request, pk)
        except Booking.DoesNotExist:
            return not_found("booking")
        except PermissionDenied as exc:
            return forbidden(exc)
        except BookingError as exc:
            return booking_error_response(exc)

        if "text/html" in request.META.get("HTTP_ACCEPT", ""):
            return redirect("booking:mine_page")
        return Response(BookingSerializer(booking).data, status=200)


class BookingApproveView(BookingTransitionView):

    def apply(self, request, pk):
        return services.approve_booking(pk, request.user)


class BookingRejectView(BookingTransitionView):

    def apply(self, request, pk):
        serializer = BookingRejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return services.reject_booking(pk, request.user, serializer.validated_data.get("reason", ""))


class BookingCancelView(BookingTransitionView):

    def apply(self, request, pk):
        return services.cancel_booking(pk, request.user)


class BookingReportView(views.APIView):
    permission_classes = [permissions.IsAuthenticated, IsSocietyAdmin]

    def get(self, request):
        return Response(services.booking_report(), status=200)
