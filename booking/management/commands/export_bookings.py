from datetime import date

import pandas as pd
from django.core.management.base import BaseCommand, CommandError

from accounts.models import display_label
from booking.models import Booking, BookingStatus
from booking.slots import format_time

COLUMNS = [
    "Booking ID", "Amenity", "Amenity Type", "Date", "Start", "End",
    "Status", "Booked By", "Unit", "Rejection Reason", "Created At",
]


def _parse_date(value, option):
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise CommandError(f"Invalid {option} '{value}', expected YYYY-MM-DD.")


def bookings_frame(queryset):
    rows = []
    for b in queryset:
        resident = getattr(b.user, "resident", None)
        rows.append({
            "Booking ID": str(b.id),
            "Amenity": b.amenity.name,
            "Amenity Type": b.amenity.get_type_display(),
            "Date": b.booking_date.isoformat(),
            "Start": format_time(b.start_time),
            "End": format_time(b.end_time),
            "Status": b.status,
            "Booked By": display_label(b.user),
            "Unit": resident.unit_number if resident else "",
            "Rejection Reason": b.rejection_reason,
            "Created At": b.created_at.isoformat(),
        })
    return pd.DataFrame(rows, columns=COLUMNS)


class Command(BaseCommand):
    help = 'Exports amenity bookings to a CSV file'

    def add_arguments(self, parser):
        parser.add_argument('--output', type=str, required=True, help='Path of the CSV file to write')
        parser.add_argument('--from', dest='date_from', type=str, help='First booking date (YYYY-MM-DD)')
        parser.add_argument('--to', dest='date_to', type=str, help='Last booking date (YYYY-MM-DD)')
        parser.add_argument('--status', type=str, choices=BookingStatus.values, help='Only bookings in this status')

    def handle(self, *args, **options):
        qs = Booking.objects.select_related("amenity", "user", "user__resident").order_by("booking_date", "start_time")
        if options.get('date_from'):
            qs = qs.filter(booking_date__gte=_parse_date(options['date_from'], '--from'))
        if options.get('date_to'):
            qs = qs.filter(booking_date__lte=_parse_date(options['date_to'], '--to'))
        if options.get('status'):
            qs = qs.filter(status=options['status'])

        df = bookings_frame(qs)
        output = options['output']
        try:
            df.to_csv(output, index=False)
        except OSError as e:
            raise CommandError(f"Could not write '{output}': {e}")

        self.stdout.write(self.style.SUCCESS(f"Exported {len(df)} booking(s) to {output}."))
