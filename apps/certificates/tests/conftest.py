import pytest

from apps.certificates.anchoring.ledger import LedgerAnchorClient
from apps.certificates.services import CertificateService


@pytest.fixture
def ledger():
    return LedgerAnchorClient()


@pytest.fixture
def service(db, ledger):
    return CertificateService(anchor=ledger)


@pytest.fixture
def issued(service, learner):
    return service.issue(track_id="eng_track", title="AI Engineering", user=learner)
