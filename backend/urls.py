"""URL configuration for the certificate service."""
from django.contrib import admin
from django.urls import include, path

from apps.certificates.views import serve_certificate_pdf

from .health import health_view

urlpatterns = [
    path('admin/', admin.site.urls),
    path('health/', health_view, name='health'),
    path('certificates/', include('apps.certificates.urls')),
    path('pdfs/<str:filename>', serve_certificate_pdf, name='certificate-pdf'),
]
