from django.conf import settings
from django.db import models


class ResidentRole(models.TextChoices):
    RESIDENT = "resident", "Resident"
    ADMIN = "admin", "Admin"
    WATCHMAN = "watchman", "Watchman"


class Resident(models.Model):
    """
    Society profile attached to every auth user: the flat they live in and
    the role they have on the portal.
    """
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="resident")
    unit_number = models.CharField(max_length=20, blank=True, db_index=True,
                                   help_text="Flat / unit number, e.g. 'A-104'")
    phone = models.CharField(max_length=20, blank=True)
    role = models.CharField(max_length=10, choices=ResidentRole.choices, default=ResidentRole.RESIDENT)

    class Meta:
        ordering = ["unit_number", "user__username"]

    def __str__(self):
        if self.unit_number:
            return f"{self.unit_number} - {self.user.username}"
        return self.user.username

    @property
    def is_admin(self):
        return self.role == ResidentRole.ADMIN


def is_society_admin(user):
    """True for Django staff/superusers and residents holding the admin role."""
    if user is None or not getattr(user, "is_authenticated", False):
        return False
    if user.is_staff or user.is_superuser:
        return True
    resident = getattr(user, "resident", None)
    return bool(resident and resident.is_admin)


def display_label(user):
    """Name shown next to a booked slot: full name, else unit number, else username."""
    full_name = f"{user.first_name} {user.last_name}".strip()
    if full_name:
        return full_name
    resident = getattr(user, "resident", None)
    if resident is not None and resident.unit_number:
        return resident.unit_number
    return user.username
