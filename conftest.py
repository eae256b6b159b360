import os

import pytest


os.environ.setdefault("DJANGO_SETTINGS_MODULE", "backend.settings.test")

import django  # noqa: E402

django.setup()


import jwt  # noqa: E402
from django.contrib.auth import get_user_model  # noqa: E402
from rest_framework.test import APIClient  # noqa: E402

from apps.certificates.anchoring import get_anchor_client  # noqa: E402


User = get_user_model()

TEST_JWT_SECRET = "test-jwt-secret"


def fake_write_pdf(self, target=None, *args, **kwargs):
    if target is not None:
        target.write(b"%PDF-1.4 stub\n%%EOF")
    return None


@pytest.fixture(autouse=True)
def stub_weasyprint(monkeypatch):
    monkeypatch.setattr("apps.certificates.rendering.HTML.write_pdf", fake_write_pdf)


@pytest.fixture(autouse=True)
def certificate_media(settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path
    settings.CERTIFICATE_PDF_ROOT = tmp_path / "pdfs"
    return settings.CERTIFICATE_PDF_ROOT


@pytest.fixture(autouse=True)
def reset_anchor_client():
    get_anchor_client.cache_clear()
    yield
    get_anchor_client.cache_clear()


@pytest.fixture
def user_factory(db):
    def create_user(username="learner", *, is_staff=False, **extra):
        user = User.objects.create_user(username=username, password="password123", **extra)
        if is_staff:
            user.is_staff = True
            user.save(update_fields=["is_staff"])
        return user

    return create_user


@pytest.fixture
def learner(user_factory):
    return user_factory("learner", first_name="Ada", last_name="Lovelace")


@pytest.fixture
def staff_user(user_factory):
    return user_factory("registrar", is_staff=True)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def bearer_token():
    def make_token(user, roles=None):
        payload = {"sub": str(user.pk)}
        if roles is not None:
            payload["roles"] = roles
        return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")

    return make_token
