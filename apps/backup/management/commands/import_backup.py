# apps/backup/management/commands/import_backup.py
from django.core.management.base import BaseCommand, CommandError

from apps.storage.workspace import get_workspace
from apps.backup.exceptions import ImportFormatError
from apps.backup.services import import_bundle, load_bundle


class Command(BaseCommand):
    help = "Merge a backup bundle into the local collections (existing ids are kept)"

    def add_arguments(self, parser):
        parser.add_argument("path", help="Backup JSON file")
        parser.add_argument(
            "--confirm",
            action="store_true",
            help="Required: acknowledge that records will be added to live collections",
        )

    def handle(self, *args, **options):
        if not options["confirm"]:
            raise CommandError("Importing changes live data; re-run with --confirm")

        try:
            with open(options["path"], "rb") as fh:
                bundle = load_bundle(fh.read())
        except OSError as e:
            raise CommandError(f"Cannot read {options['path']}: {e}")
        except ImportFormatError as e:
            raise CommandError(e.message)

        workspace = get_workspace()
        try:
            added = import_bundle(workspace, bundle)
        except ImportFormatError as e:
            raise CommandError(e.message)
        workspace.shutdown(wait=True)

        for entity_type, count in added.items():
            self.stdout.write(f"  {entity_type}: {count} added")
        self.stdout.write(self.style.SUCCESS("✓ Import complete"))
