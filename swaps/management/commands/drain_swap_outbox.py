from django.core.management.base import BaseCommand

from swaps.services import drain_outbox


class Command(BaseCommand):
    help = "Retry pending swap offer side effects (book status updates and chat notifications)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--limit",
            type=int,
            default=None,
            help="Process at most this many entries.",
        )

    def handle(self, *args, **options):
        report = drain_outbox(limit=options["limit"])
        self.stdout.write(
            f"Delivered: {report.delivered}, to retry: {report.retried}, "
            f"failed: {report.failed}, skipped: {report.skipped}"
        )
        if report.failed:
            self.stderr.write(
                self.style.WARNING(f"{report.failed} entries exceeded the retry limit.")
            )
