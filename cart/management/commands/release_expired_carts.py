from __future__ import annotations

from django.core.management.base import BaseCommand

from cart.services import release_expired_carts


class Command(BaseCommand):
    help = "Cancel idle pending carts and give their held tickets back."

    def handle(self, *args, **options):
        expired = release_expired_carts()
        self.stdout.write(self.style.SUCCESS(f"Released {expired} expired cart(s)."))
