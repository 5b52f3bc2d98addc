# apps/storage/management/commands/sync_records.py
from django.core.management.base import BaseCommand, CommandError

from apps.storage.workspace import get_workspace


class Command(BaseCommand):
    help = "Replay pending remote writes and refresh the local cache from the record store"

    def add_arguments(self, parser):
        parser.add_argument(
            "--no-refresh",
            action="store_true",
            help="Only flush the outbox, do not re-read collections",
        )

    def handle(self, *args, **options):
        workspace = get_workspace()

        if workspace.adapter.client is None:
            raise CommandError("No remote record store configured (RECORD_STORE_URL is empty)")

        workspace.connectivity.mark_online()
        result = workspace.adapter.flush_outbox()
        self.stdout.write(
            f"Outbox: {result['sent']} sent, {result['failed']} failed, {result['remaining']} remaining"
        )

        if not options["no_refresh"]:
            counts = workspace.refresh_all()
            for entity_type, count in counts.items():
                self.stdout.write(f"  {entity_type}: {count}")

        workspace.shutdown(wait=True)
        if result['failed']:
            self.stdout.write(self.style.WARNING("Some writes are still pending"))
        else:
            self.stdout.write(self.style.SUCCESS("Sync complete"))
