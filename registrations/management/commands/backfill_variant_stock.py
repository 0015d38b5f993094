from django.core.management.base import BaseCommand

from registrations.services import RegistrationService


class Command(BaseCommand):
    help = "Persist derived per-variant stock for events created with only a total."

    def handle(self, *args, **options):
        count = RegistrationService.from_settings().backfill_legacy_stock()
        self.stdout.write(self.style.SUCCESS(f"Backfilled {count} event(s)."))
