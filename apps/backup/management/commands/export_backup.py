# apps/backup/management/commands/export_backup.py
from django.core.management.base import BaseCommand, CommandError

from apps.storage.workspace import get_workspace
from apps.backup.exceptions import InvalidExportRangeError
from apps.backup.services import EXPORT_MODES, MODE_FULL, build_export, export_filename, render_bundle


class Command(BaseCommand):
    help = "Write a backup bundle (full, daily or date range) to a JSON file"

    def add_arguments(self, parser):
        parser.add_argument("--mode", choices=EXPORT_MODES, default=MODE_FULL)
        parser.add_argument("--date", help="Day for daily mode (YYYY-MM-DD, default today)")
        parser.add_argument("--start", help="Range start (YYYY-MM-DD)")
        parser.add_argument("--end", help="Range end (YYYY-MM-DD)")
        parser.add_argument("--output", "-o", help="Target file; '-' writes to stdout")

    def handle(self, *args, **options):
        try:
            bundle = build_export(
                get_workspace(),
                mode=options["mode"],
                day=options["date"],
                start=options["start"],
                end=options["end"],
            )
        except InvalidExportRangeError as e:
            raise CommandError(e.message)

        content = render_bundle(bundle)
        output = options["output"] or export_filename(options["mode"])

        if output == "-":
            self.stdout.write(content)
            return

        with open(output, "w", encoding="utf-8") as fh:
            fh.write(content)
        self.stdout.write(self.style.SUCCESS(f"✓ Backup written to {output} ({bundle['export_info']['range']})"))
