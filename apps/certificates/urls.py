from django.urls import path

from . import views

app_name = "certificates"

urlpatterns = [
    path("issue", views.IssueCertificateView.as_view(), name="issue"),
    path(
        "generate-certificate",
        views.GenerateCertificateView.as_view(),
        name="generate",
    ),
    path("mine", views.MyCertificatesView.as_view(), name="mine"),
    path(
        "verify/<str:credential_id>",
        views.VerifyCertificateView.as_view(),
        name="verify",
    ),
    path("revoke", views.RevokeCertificateView.as_view(), name="revoke"),
    path("reissue", views.ReissueCertificateView.as_view(), name="reissue"),
    path("<uuid:pk>", views.CertificateDetailView.as_view(), name="detail"),
]
