from django.contrib import admin
from django.urls import path, include
from django.views.generic import RedirectView

urlpatterns = [
    path('admin/', admin.site.urls),
    path("", RedirectView.as_view(pattern_name="booking:page", permanent=False), name="root"),
    path("accounts/", include(("accounts.urls", "accounts"), namespace="accounts")),
    path("booking/", include(("booking.urls", "booking"), namespace="booking")),
]
