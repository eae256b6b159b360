"""Re-hash archived certificate PDFs and walk the anchor ledger."""

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from apps.certificates.anchoring.ledger import verify_ledger
from apps.certificates.hashing import file_sha256_hex
from apps.certificates.models import AnchorBlock, Certificate
from apps.certificates.storage import CertificatePdfArchive


class Command(BaseCommand):
    help = "Detect PDF drift and broken anchor ledger links."

    def add_arguments(self, parser):
        parser.add_argument(
            "--include-revoked",
            action="store_true",
            help="Also re-hash PDFs of revoked certificates.",
        )
        parser.add_argument(
            "--skip-ledger",
            action="store_true",
            help="Do not walk the local anchor ledger.",
        )

    def handle(self, *args, **options):
        archive = CertificatePdfArchive()
        queryset = Certificate.objects.all()
        if not options["include_revoked"]:
            queryset = queryset.active()

        problems: list[str] = []
        checked = 0
        for certificate in queryset.iterator():
            checked += 1
            filename = certificate.pdf_filename
            if not archive.exists(filename):
                problems.append(f"{certificate.credential_id}: PDF {filename} is missing")
                continue
            if file_sha256_hex(archive.path(filename)) != certificate.pdf_hash:
                problems.append(f"{certificate.credential_id}: PDF hash mismatch")

        self.stdout.write(f"Checked {checked} certificate PDF(s).")

        if not options["skip_ledger"] and AnchorBlock.objects.exists():
            report = verify_ledger()
            self.stdout.write(f"Checked {report.checked} ledger block(s).")
            if not report.ok:
                problems.append(f"Ledger broken at block {report.broken_at}: {report.message}")

        for problem in problems:
            self.stderr.write(problem)

        if problems:
            raise CommandError(f"{len(problems)} integrity problem(s) found.")

        self.stdout.write(self.style.SUCCESS("Certificate archive and ledger are intact."))
