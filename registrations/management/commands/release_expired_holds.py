from django.core.management.base import BaseCommand

from registrations.services import RegistrationService


class Command(BaseCommand):
    help = "Cancel unconfirmed merchandise registrations whose stock hold expired."

    def handle(self, *args, **options):
        released = RegistrationService.from_settings().release_expired_holds()
        self.stdout.write(
            self.style.SUCCESS(f"Released {len(released)} expired hold(s).")
        )
