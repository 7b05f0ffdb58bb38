from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from parks.models import Park
from scheduling.errors import SchedulingError
from scheduling.materializer import SlotMaterializer


class Command(BaseCommand):
    help = "Materialize time-slot instances ahead of time (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--park", type=int, help="Only this park id (default: every active park).")
        parser.add_argument("--days", type=int, default=7, help="Number of days to materialize.")
        parser.add_argument("--start", help="First date, YYYY-MM-DD (default: today).")

    def handle(self, *args, **options):
        start = options["start"] or timezone.localdate()
        if options["park"]:
            park_ids = [options["park"]]
        else:
            park_ids = list(Park.objects.filter(is_active=True).values_list("pk", flat=True))

        materializer = SlotMaterializer()
        for park_id in park_ids:
            try:
                summary = materializer.materialize_range(park_id, start, options["days"])
            except SchedulingError as exc:
                raise CommandError(f"Park {park_id}: {exc}") from exc

            total = sum(summary.values())
            open_days = sum(1 for count in summary.values() if count)
            self.stdout.write(
                self.style.SUCCESS(
                    f"Park {park_id}: {total} instance(s) across {open_days}/{len(summary)} open day(s)"
                )
            )
