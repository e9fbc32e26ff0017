from django.urls import path
from . import views

app_name = "booking"

urlpatterns = [
    path("page/", views.booking_page, name="page"),
    path("mine/", views.my_bookings_page, name="mine_page"),
    path("api/amenities/", views.AmenityListView.as_view(), name="amenities"),
    path("availability/", views.AvailabilityView.as_view(), name="availability"),
    path("book/", views.BookingCreateView.as_view(), name="book"),
    path("api/mine/", views.MyBookingAPI.as_view(), name="mine_api"),
    path("api/reports/", views.BookingReportView.as_view(), name="reports"),
    path("approve/<uuid:pk>/", views.BookingApproveView.as_view(), name="booking-approve"),
    path("reject/<uuid:pk>/", views.BookingRejectView.as_view(), name="booking-reject"),
    path("cancel/<uuid:pk>/", views.BookingCancelView.as_view(), name="booking-cancel"),
]
