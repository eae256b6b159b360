"""Admin configuration for certificate records and the anchor ledger."""
from __future__ import annotations

from django import forms
from django.contrib import admin, messages
from django.contrib.admin.helpers import ActionForm
from django.utils.translation import ngettext

from .exceptions import CertificateError
from .models import AnchorBlock, Certificate
from .services import get_certificate_service


class CertificateAdminActionForm(ActionForm):
    """Collect the reason recorded against a revocation."""

    reason = forms.CharField(
        required=False,
        label="Reason for revocation",
        widget=forms.Textarea(attrs={"rows": 2}),
    )


@admin.register(Certificate)
class CertificateAdmin(admin.ModelAdmin):
    list_display = (
        "credential_id",
        "recipient_name",
        "track_id",
        "status",
        "issued_at",
        "reissued_from",
    )
    list_filter = ("status", "track_id")
    search_fields = ("credential_id", "recipient_name", "reissued_from")
    readonly_fields = tuple(field.name for field in Certificate._meta.fields)
    actions = ["action_revoke"]
    action_form = CertificateAdminActionForm

    def has_add_permission(self, request):  # pragma: no cover - admin wiring
        return False

    def has_delete_permission(self, request, obj=None):  # pragma: no cover - admin wiring
        return False

    @admin.action(description="Revoke selected certificates")
    def action_revoke(self, request, queryset):
        reason = (request.POST.get("reason") or "").strip()
        service = get_certificate_service()
        revoked = 0
        for certificate in queryset:
            try:
                service.revoke(certificate.credential_id, reason, actor=request.user)
            except CertificateError as exc:
                self.message_user(
                    request,
                    f"Could not revoke {certificate.credential_id}: {exc}",
                    level=messages.ERROR,
                )
                continue
            revoked += 1

        if revoked:
            message = ngettext(
                "Revoked %(count)d certificate.",
                "Revoked %(count)d certificates.",
                revoked,
            ) % {"count": revoked}
            self.message_user(request, message, level=messages.SUCCESS)


@admin.register(AnchorBlock)
class AnchorBlockAdmin(admin.ModelAdmin):
    list_display = ("sequence", "kind", "credential_id", "created_at")
    list_filter = ("kind",)
    search_fields = ("credential_id", "block_hash")
    readonly_fields = tuple(field.name for field in AnchorBlock._meta.fields)

    def has_add_permission(self, request):  # pragma: no cover - admin wiring
        return False

    def has_change_permission(self, request, obj=None):  # pragma: no cover - admin wiring
        return False

    def has_delete_permission(self, request, obj=None):  # pragma: no cover - admin wiring
        return False
