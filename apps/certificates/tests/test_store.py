import pytest
from django.db import IntegrityError, transaction

from apps.certificates.exceptions import DuplicateCredentialError, NotFoundError, ValidationError
from apps.certificates.models import Certificate
from apps.certificates.store import CertificateStore

pytestmark = pytest.mark.django_db


@pytest.fixture
def store():
    return CertificateStore()


@pytest.fixture
def record(learner):
    def build(credential_id="ENG-1-AAAAAA", **overrides):
        fields = {
            "credential_id": credential_id,
            "user": learner,
            "track_id": "eng",
            "title": "AI Engineering",
            "recipient_name": "Ada Lovelace",
            "issuer_name": "AI First Academy",
            "pdf_path": f"/pdfs/{credential_id}.pdf",
            "pdf_hash": "0" * 64,
        }
        fields.update(overrides)
        return fields

    return build


def test_create_persists_active_record(store, record):
    certificate = store.create(**record())

    assert certificate.status == Certificate.Status.ACTIVE
    assert store.get_by_id(certificate.pk) == certificate


def test_duplicate_credential_id_is_rejected(store, record):
    store.create(**record())

    with pytest.raises(DuplicateCredentialError):
        store.create(**record())

    assert Certificate.objects.count() == 1


def test_lookup_by_credential_id_ignores_case(store, record):
    certificate = store.create(**record())

    assert store.get_by_credential_id("eng-1-aaaaaa") == certificate
    assert store.get_by_credential_id("ENG-404-ZZZZZZ") is None
    assert store.get_by_credential_id("") is None


def test_mark_revoked_sets_reason_and_timestamp(store, record):
    store.create(**record())

    certificate = store.mark_revoked("ENG-1-AAAAAA", "  policy violation ")

    assert certificate.status == Certificate.Status.REVOKED
    assert certificate.revoked_reason == "policy violation"
    assert certificate.revoked_at is not None


def test_mark_revoked_twice_leaves_first_revocation_untouched(store, record):
    store.create(**record())
    first = store.mark_revoked("ENG-1-AAAAAA", "policy violation")

    second = store.mark_revoked("ENG-1-AAAAAA", "another reason")

    assert second.revoked_at == first.revoked_at
    assert second.revoked_reason == "policy violation"


def test_mark_revoked_unknown_credential(store):
    with pytest.raises(NotFoundError):
        store.mark_revoked("ENG-404-ZZZZZZ")


def test_list_by_user_only_returns_own_records(store, record, user_factory):
    other = user_factory("other")
    mine = store.create(**record())
    store.create(**record("ENG-2-BBBBBB", user=other))

    assert list(store.list_by_user(mine.user_id)) == [mine]


def test_lineage_follows_reissued_from(store, record):
    root = store.create(**record())
    middle = store.create(**record("ENG-2-BBBBBB", reissued_from=root.credential_id))
    leaf = store.create(**record("ENG-3-CCCCCC", reissued_from=middle.credential_id))

    assert store.lineage(leaf.credential_id) == [leaf, middle, root]
    assert store.successor_of(root.credential_id) == middle
    assert store.successor_of(leaf.credential_id) is None


def test_lineage_stops_on_corrupted_cycle(store, record):
    first = store.create(**record(reissued_from="ENG-2-BBBBBB"))
    second = store.create(**record("ENG-2-BBBBBB", reissued_from=first.credential_id))

    assert store.lineage(first.credential_id) == [first, second]


def test_second_successor_is_rejected(store, record):
    root = store.create(**record())
    store.create(**record("ENG-2-BBBBBB", reissued_from=root.credential_id))

    with pytest.raises(ValidationError):
        store.create(**record("ENG-3-CCCCCC", reissued_from=root.credential_id))

    assert Certificate.objects.filter(reissued_from=root.credential_id).count() == 1


def test_database_enforces_single_successor(record):
    Certificate.objects.create(**record("ENG-2-BBBBBB", reissued_from="ENG-1-AAAAAA"))

    with pytest.raises(IntegrityError), transaction.atomic():
        Certificate.objects.create(**record("ENG-3-CCCCCC", reissued_from="ENG-1-AAAAAA"))


def test_successor_conflict_at_insert_is_a_validation_error(store, record, monkeypatch):
    store.create(**record("ENG-2-BBBBBB", reissued_from="ENG-1-AAAAAA"))
    monkeypatch.setattr(Certificate, "full_clean", lambda self, *args, **kwargs: None)

    with pytest.raises(ValidationError):
        store.create(**record("ENG-3-CCCCCC", reissued_from="ENG-1-AAAAAA"))


def test_records_without_predecessor_do_not_conflict(store, record):
    store.create(**record())
    store.create(**record("ENG-2-BBBBBB"))

    assert Certificate.objects.filter(reissued_from="").count() == 2


def test_validate_fields_checks_only_given_fields(store):
    store.validate_fields(title="AI Engineering", score=50)

    with pytest.raises(ValidationError):
        store.validate_fields(recipient_name="R" * 256)
