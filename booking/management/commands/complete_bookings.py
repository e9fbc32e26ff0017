from datetime import date

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from booking.services import complete_elapsed_bookings


class Command(BaseCommand):
    help = 'Marks confirmed bookings whose date has passed as completed'

    def add_arguments(self, parser):
        parser.add_argument('--date', type=str, help='Treat this day (YYYY-MM-DD) as today')

    def handle(self, *args, **options):
        today = timezone.localdate()
        if options.get('date'):
            try:
                today = date.fromisoformat(options['date'])
            except ValueError:
                raise CommandError(f"Invalid date '{options['date']}', expected YYYY-MM-DD.")

        count = complete_elapsed_bookings(today)
        self.stdout.write(self.style.SUCCESS(f"{count} booking(s) before {today} marked as completed."))
