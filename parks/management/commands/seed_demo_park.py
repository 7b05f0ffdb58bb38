from __future__ import annotations

from django.core.management.base import BaseCommand

from parks.seed import seed_demo_park


class Command(BaseCommand):
    help = "Seed a demo park with pricings and a special period (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--update-existing",
            action="store_true",
            help="Reset the demo park and its pricings to the default seed values.",
        )

    def handle(self, *args, **options):
        result = seed_demo_park(update_existing=options["update_existing"])
        self.stdout.write(
            self.style.SUCCESS(
                f"Seed completed: created={result['created']} updated={result['updated']} skipped={result['skipped']}"
            )
        )
