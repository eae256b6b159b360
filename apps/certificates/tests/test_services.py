import re

import pytest

from apps.audit.models import LogEntry
from apps.certificates.anchoring.ledger import LedgerAnchorClient
from apps.certificates.exceptions import (
    CertificateIssuanceError,
    DuplicateCredentialError,
    NotFoundError,
    StoreWriteError,
    TemplateNotFoundError,
    ValidationError,
)
from apps.certificates.hashing import file_sha256_hex
from apps.certificates.models import AnchorBlock, Certificate
from apps.certificates.rendering import CertificateRenderer
from apps.certificates.services import CertificateService
from apps.certificates.storage import CertificatePdfArchive
from apps.certificates.store import CertificateStore

from .fakes import FailingAnchorClient, PermissiveAnchorClient, UnavailableAnchorClient

pytestmark = pytest.mark.django_db


class FlakyStore(CertificateStore):
    def __init__(self, failures):
        self.failures = failures

    def create(self, **fields):
        if self.failures > 0:
            self.failures -= 1
            raise StoreWriteError(details="database is locked")
        return super().create(**fields)



class FlakyArchive(CertificatePdfArchive):
    def __init__(self, failures):
        super().__init__()
        self.failures = failures

    def save(self, credential_id, pdf_bytes):
        if self.failures > 0:
            self.failures -= 1
            raise OSError("No space left on device")
        return super().save(credential_id, pdf_bytes)


class QueuedRenderer(CertificateRenderer):
    def __init__(self, outputs):
        super().__init__()
        self.outputs = list(outputs)

    def render(self, template_path, data):
        return self.outputs.pop(0)


def test_issue_creates_anchored_active_certificate(issued, certificate_media):
    certificate = issued.certificate

    assert re.fullmatch(r"ENG_TRACK-[0-9A-Z]+-[0-9A-Z]{6}", certificate.credential_id)
    assert certificate.status == Certificate.Status.ACTIVE
    assert certificate.recipient_name == "Ada Lovelace"
    assert certificate.issuer_name == "AI First Academy"
    assert certificate.score == 100
    assert certificate.pdf_path == f"/pdfs/{certificate.credential_id}.pdf"
    assert certificate.anchor_tx_hash.startswith("0x")
    assert issued.pdf_bytes.startswith(b"%PDF")
    assert file_sha256_hex(certificate_media / certificate.pdf_filename) == certificate.pdf_hash


def test_issued_certificate_verifies(service, issued):
    result = service.verify(issued.certificate.credential_id)

    assert result.valid is True
    assert result.blockchain.credential_id == issued.certificate.credential_id
    assert result.superseded_by is None


def test_issue_logs_lifecycle_event(issued):
    entry = LogEntry.objects.get(context__action="certificate.issued")

    assert entry.user == issued.certificate.user
    assert entry.context["credential_id"] == issued.certificate.credential_id


@pytest.mark.parametrize(
    "kwargs",
    [
        {"track_id": "", "title": "AI Engineering"},
        {"track_id": "eng", "title": "  "},
        {"track_id": "eng", "title": "AI Engineering", "score": 101},
        {"track_id": "eng", "title": "AI Engineering", "score": "high"},
        {"track_id": "e" * 65, "title": "AI Engineering"},
        {"track_id": "eng", "title": "T" * 256},
        {"track_id": "eng", "title": "AI Engineering", "recipient_name": "R" * 256},
    ],
)
def test_issue_rejects_invalid_input_before_anchoring(service, learner, kwargs):
    with pytest.raises(ValidationError):
        service.issue(user=learner, **kwargs)

    assert not AnchorBlock.objects.exists()


def test_overlong_recipient_name_never_spends_an_anchor(service, user_factory, certificate_media):
    user = user_factory("longname", first_name="A" * 150, last_name="B" * 150)

    with pytest.raises(ValidationError):
        service.issue(track_id="eng_track", title="AI Engineering", user=user)

    assert not AnchorBlock.objects.exists()
    assert not Certificate.objects.exists()
    assert not LogEntry.objects.filter(context__action="certificate.anchor.orphaned").exists()
    assert not certificate_media.exists() or not any(certificate_media.iterdir())


def test_anchor_failure_leaves_no_record(learner):
    anchor = FailingAnchorClient(failures=5, retryable=False)
    service = CertificateService(anchor=anchor)

    with pytest.raises(CertificateIssuanceError) as excinfo:
        service.issue(track_id="eng_track", title="AI Engineering", user=learner)

    assert excinfo.value.retryable is False
    assert anchor.attempted_ids
    assert CertificateStore().get_by_credential_id(anchor.attempted_ids[-1]) is None
    assert not Certificate.objects.exists()


def test_retryable_anchor_failure_retries_with_fresh_id(learner):
    anchor = FailingAnchorClient(failures=2)
    service = CertificateService(anchor=anchor, anchor_max_attempts=3)

    issued = service.issue(track_id="eng_track", title="AI Engineering", user=learner)

    assert len(anchor.attempted_ids) == 3
    assert len(set(anchor.attempted_ids)) == 3
    assert issued.certificate.credential_id == anchor.attempted_ids[-1]
    assert LogEntry.objects.filter(context__action="certificate.anchor.failed").count() == 2


def test_retryable_failures_exhaust_attempts(learner):
    anchor = FailingAnchorClient(failures=5)
    service = CertificateService(anchor=anchor, anchor_max_attempts=2)

    with pytest.raises(CertificateIssuanceError) as excinfo:
        service.issue(track_id="eng_track", title="AI Engineering", user=learner)

    assert excinfo.value.retryable is True
    assert len(anchor.attempted_ids) == 2
    assert not Certificate.objects.exists()


def test_submitted_transaction_is_never_reanchored(learner):
    anchor = FailingAnchorClient(failures=1, tx_hash="0xabc")
    service = CertificateService(anchor=anchor, anchor_max_attempts=3)

    with pytest.raises(CertificateIssuanceError):
        service.issue(track_id="eng_track", title="AI Engineering", user=learner)

    assert len(anchor.attempted_ids) == 1


def test_render_failure_logs_orphaned_anchor(service, learner, settings):
    settings.CERTIFICATE_TEMPLATES = {"default": "certificates/missing.html"}

    with pytest.raises(TemplateNotFoundError):
        service.issue(track_id="eng_track", title="AI Engineering", user=learner)

    block = AnchorBlock.objects.get()
    entry = LogEntry.objects.get(context__action="certificate.anchor.orphaned")
    assert entry.level == "CRITICAL"
    assert entry.context["credential_id"] == block.credential_id
    assert entry.context["stage"] == "render"
    assert not Certificate.objects.exists()


def test_store_write_is_retried_with_same_pdf(ledger, learner):
    service = CertificateService(anchor=ledger, store=FlakyStore(failures=2), store_max_attempts=3)

    issued = service.issue(track_id="eng_track", title="AI Engineering", user=learner)

    assert Certificate.objects.get() == issued.certificate
    assert AnchorBlock.objects.count() == 1
    assert LogEntry.objects.filter(context__action="certificate.store.retry").count() == 2


def test_store_exhaustion_raises_and_logs_orphan(ledger, learner):
    service = CertificateService(anchor=ledger, store=FlakyStore(failures=5), store_max_attempts=2)

    with pytest.raises(StoreWriteError):
        service.issue(track_id="eng_track", title="AI Engineering", user=learner)

    assert not Certificate.objects.exists()
    entry = LogEntry.objects.get(context__action="certificate.anchor.orphaned")
    assert entry.context["stage"] == "store"


def test_archive_write_failure_rolls_back_record_and_retries(ledger, learner, certificate_media):
    service = CertificateService(anchor=ledger, archive=FlakyArchive(failures=1), store_max_attempts=2)

    issued = service.issue(track_id="eng_track", title="AI Engineering", user=learner)

    assert Certificate.objects.get() == issued.certificate
    assert file_sha256_hex(certificate_media / issued.certificate.pdf_filename) == issued.certificate.pdf_hash
    assert LogEntry.objects.filter(context__action="certificate.store.retry").count() == 1


def test_colliding_credential_id_leaves_existing_pdf_untouched(learner, certificate_media):
    service = CertificateService(
        anchor=PermissiveAnchorClient(),
        renderer=QueuedRenderer([b"%PDF-1.4 first\n%%EOF", b"%PDF-1.4 second\n%%EOF"]),
        id_generator=lambda track_id: "ENG_TRACK-LOYW3V28-AAAAAA",
    )
    first = service.issue(track_id="eng_track", title="AI Engineering", user=learner).certificate

    with pytest.raises(DuplicateCredentialError):
        service.issue(track_id="eng_track", title="AI Engineering", user=learner)

    assert Certificate.objects.count() == 1
    assert file_sha256_hex(certificate_media / first.pdf_filename) == first.pdf_hash
    entry = LogEntry.objects.get(context__action="certificate.anchor.orphaned")
    assert entry.context["stage"] == "store"


def test_verify_unknown_credential(service):
    result = service.verify("ENG-404-ZZZZZZ")

    assert result.valid is False
    assert result.certificate is None


def test_store_only_record_is_not_trusted(service, learner):
    Certificate.objects.create(
        credential_id="ENG-1-AAAAAA",
        user=learner,
        track_id="eng",
        title="AI Engineering",
        recipient_name="Ada Lovelace",
        issuer_name="AI First Academy",
        pdf_path="/pdfs/ENG-1-AAAAAA.pdf",
        pdf_hash="0" * 64,
    )

    result = service.verify("ENG-1-AAAAAA")

    assert result.valid is False
    assert result.certificate is not None
    assert result.blockchain is None


def test_verify_when_anchor_unavailable_is_invalid(issued):
    service = CertificateService(anchor=UnavailableAnchorClient())

    result = service.verify(issued.certificate.credential_id)

    assert result.valid is False
    assert result.blockchain is None
    assert result.certificate == issued.certificate


def test_verify_detects_pdf_drift(service, issued, certificate_media):
    (certificate_media / issued.certificate.pdf_filename).write_bytes(b"%PDF-1.4 forged")

    result = service.verify(issued.certificate.credential_id)

    assert result.valid is False
    assert "hash" in result.reason


def test_verify_detects_missing_pdf(service, issued, certificate_media):
    (certificate_media / issued.certificate.pdf_filename).unlink()

    result = service.verify(issued.certificate.credential_id)

    assert result.valid is False
    assert "missing" in result.reason


def test_verify_reports_unreadable_pdf(service, issued, certificate_media):
    path = certificate_media / issued.certificate.pdf_filename
    path.unlink()
    path.mkdir()

    result = service.verify(issued.certificate.credential_id)

    assert result.valid is False
    assert result.reason == "Certificate PDF could not be read."


def test_revoke_is_idempotent(service, issued):
    credential_id = issued.certificate.credential_id

    first = service.revoke(credential_id, "policy violation")
    second = service.revoke(credential_id, "policy violation")

    assert first.status == second.status == Certificate.Status.REVOKED
    assert second.revoked_at == first.revoked_at
    assert service.verify(credential_id).valid is False


def test_revoke_unknown_credential(service):
    with pytest.raises(NotFoundError):
        service.revoke("ENG-404-ZZZZZZ")


def test_revoke_anchors_revocation_when_enabled(service, issued, settings):
    settings.CERTIFICATE_ANCHOR_REVOCATIONS = True

    service.revoke(issued.certificate.credential_id, "policy violation")

    assert AnchorBlock.objects.filter(kind=AnchorBlock.Kind.REVOKE).count() == 1


def test_revoke_keeps_store_update_when_chain_revocation_fails(learner, settings):
    settings.CERTIFICATE_ANCHOR_REVOCATIONS = True
    service = CertificateService(anchor=LedgerAnchorClient())
    Certificate.objects.create(
        credential_id="ENG-1-AAAAAA",
        user=learner,
        track_id="eng",
        title="AI Engineering",
        recipient_name="Ada Lovelace",
        issuer_name="AI First Academy",
        pdf_path="/pdfs/ENG-1-AAAAAA.pdf",
        pdf_hash="0" * 64,
    )

    certificate = service.revoke("ENG-1-AAAAAA")

    assert certificate.status == Certificate.Status.REVOKED
    assert LogEntry.objects.filter(context__action="certificate.anchor.revoke_failed").exists()


def test_reissue_links_lineage(service, issued):
    old_id = issued.certificate.credential_id

    result = service.reissue(old_id, "name change", {"recipientName": "Ada King"})

    old = Certificate.objects.get(credential_id=old_id)
    new = result.new_certificate
    assert old.status == Certificate.Status.REVOKED
    assert old.revoked_reason == "name change"
    assert new.status == Certificate.Status.ACTIVE
    assert new.reissued_from == old_id
    assert new.recipient_name == "Ada King"
    assert new.title == old.title

    old_result = service.verify(old_id)
    assert old_result.certificate is not None
    assert old_result.valid is False
    assert old_result.superseded_by == new.credential_id
    assert service.verify(new.credential_id).valid is True


def test_reissue_chain_is_acyclic(service, issued):
    second = service.reissue(issued.certificate.credential_id).new_certificate
    third = service.reissue(second.credential_id).new_certificate

    lineage = service.store.lineage(third.credential_id)

    ids = [certificate.credential_id for certificate in lineage]
    assert ids == [third.credential_id, second.credential_id, issued.certificate.credential_id]
    assert len(ids) == len(set(ids))


def test_reissue_twice_from_same_ancestor_is_rejected(service, issued):
    service.reissue(issued.certificate.credential_id)

    with pytest.raises(ValidationError):
        service.reissue(issued.certificate.credential_id)

    assert Certificate.objects.count() == 2


def test_concurrent_reissue_cannot_create_second_successor(service, issued, monkeypatch):
    old_id = issued.certificate.credential_id
    first = service.reissue(old_id).new_certificate
    # Second request read "no successor" before the first one committed.
    monkeypatch.setattr(service.store, "successor_of", lambda credential_id: None)

    with pytest.raises(ValidationError):
        service.reissue(old_id)

    assert list(Certificate.objects.filter(reissued_from=old_id)) == [first]


def test_reissue_unknown_credential(service):
    with pytest.raises(NotFoundError):
        service.reissue("ENG-404-ZZZZZZ")
