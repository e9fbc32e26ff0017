from django.core.management.base import BaseCommand
from django.db import transaction

from booking.models import Amenity, AmenityType

DEFAULT_AMENITIES = [
    {
        "name": "Swimming Pool",
        "type": AmenityType.SWIMMING_POOL,
        "location": "Podium level",
        "description": "Swimming pool with changing rooms",
        "capacity": 20,
    },
    {
        "name": "Gym",
        "type": AmenityType.GYM,
        "location": "Clubhouse, ground floor",
        "description": "Fully equipped gym with cardio and strength training equipment",
        "capacity": 15,
    },
    {
        "name": "Party Hall",
        "type": AmenityType.PARTY_HALL,
        "location": "Clubhouse, first floor",
        "description": "Large hall for events and gatherings, booked for the full day",
        "capacity": 100,
    },
    {
        "name": "Pool Table",
        "type": AmenityType.POOL_TABLE,
        "location": "Recreation room",
        "description": "Professional pool table",
        "capacity": 4,
    },
    {
        "name": "Guest Parking",
        "type": AmenityType.GUEST_PARKING,
        "location": "Basement 1",
        "description": "Visitor parking bay, booked for 24 hours at a time",
        "capacity": 1,
    },
]


class Command(BaseCommand):
    help = 'Creates the standard society amenities if they do not exist yet'

    @transaction.atomic
    def handle(self, *args, **options):
        created_count = 0
        for data in DEFAULT_AMENITIES:
            _, created = Amenity.objects.get_or_create(
                name=data["name"],
                type=data["type"],
                defaults={k: v for k, v in data.items() if k not in ("name", "type")},
            )
            if created:
                created_count += 1

        self.stdout.write(self.style.SUCCESS(
            f"Seed completed. Added {created_count} amenities, {len(DEFAULT_AMENITIES) - created_count} already present."
        ))
