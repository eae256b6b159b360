"""Request and response serializers for the certificate API."""

from __future__ import annotations

from rest_framework import serializers

from .models import Certificate


class CertificateSerializer(serializers.ModelSerializer):
    credentialId = serializers.CharField(source="credential_id", read_only=True)
    userId = serializers.CharField(source="user_id", read_only=True)
    trackId = serializers.CharField(source="track_id", read_only=True)
    recipientName = serializers.CharField(source="recipient_name", read_only=True)
    issuerName = serializers.CharField(source="issuer_name", read_only=True)
    issuedAt = serializers.DateTimeField(source="issued_at", read_only=True)
    pdfPath = serializers.CharField(source="pdf_path", read_only=True)
    pdfHash = serializers.CharField(source="pdf_hash", read_only=True)
    revokedAt = serializers.DateTimeField(source="revoked_at", read_only=True)
    revokedReason = serializers.CharField(source="revoked_reason", read_only=True)
    reissuedFrom = serializers.SerializerMethodField()
    verificationUrl = serializers.CharField(source="verification_url", read_only=True)
    anchorTxHash = serializers.CharField(source="anchor_tx_hash", read_only=True)
    anchorBlockNumber = serializers.IntegerField(source="anchor_block_number", read_only=True)

    class Meta:
        model = Certificate
        fields = (
            "id",
            "credentialId",
            "userId",
            "trackId",
            "title",
            "recipientName",
            "issuerName",
            "issuedAt",
            "score",
            "pdfPath",
            "pdfHash",
            "status",
            "revokedAt",
            "revokedReason",
            "reissuedFrom",
            "verificationUrl",
            "anchorTxHash",
            "anchorBlockNumber",
        )
        read_only_fields = fields

    def get_reissuedFrom(self, obj: Certificate) -> str | None:
        return obj.reissued_from or None


class OnChainRecordSerializer(serializers.Serializer):
    credentialId = serializers.CharField(source="credential_id")
    title = serializers.CharField()
    trackId = serializers.CharField(source="track_id")
    owner = serializers.CharField(source="owner_address")
    issuedAt = serializers.DateTimeField(source="issued_at", allow_null=True)
    revoked = serializers.BooleanField()
    txHash = serializers.CharField(source="tx_hash", allow_blank=True)
    blockNumber = serializers.IntegerField(source="block_number", allow_null=True)


class IssueCertificateSerializer(serializers.Serializer):
    trackId = serializers.CharField(max_length=64, trim_whitespace=True)
    title = serializers.CharField(max_length=255, trim_whitespace=True)
    score = serializers.FloatField(required=False, allow_null=True, min_value=0, max_value=100)
    recipientName = serializers.CharField(max_length=255, required=False, allow_blank=True)


class RevokeCertificateSerializer(serializers.Serializer):
    credentialId = serializers.CharField(max_length=96)
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class UpdatedDetailsSerializer(serializers.Serializer):
    trackId = serializers.CharField(max_length=64, required=False)
    title = serializers.CharField(max_length=255, required=False)
    score = serializers.FloatField(required=False, allow_null=True, min_value=0, max_value=100)
    recipientName = serializers.CharField(max_length=255, required=False)


class ReissueCertificateSerializer(serializers.Serializer):
    oldCredentialId = serializers.CharField(max_length=96)
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    updatedDetails = UpdatedDetailsSerializer(required=False, allow_null=True)


def serialize_verification(result) -> dict:
    """Return the public JSON body for a :class:`VerificationResult`."""

    payload: dict = {"valid": result.valid}
    if result.certificate is not None:
        payload["certificate"] = CertificateSerializer(result.certificate).data
        payload["blockchain"] = (
            OnChainRecordSerializer(result.blockchain).data if result.blockchain else None
        )
    if result.reason:
        payload["reason"] = result.reason
    if result.superseded_by:
        payload["supersededBy"] = result.superseded_by
    return payload


__all__ = [
    "CertificateSerializer",
    "IssueCertificateSerializer",
    "OnChainRecordSerializer",
    "ReissueCertificateSerializer",
    "RevokeCertificateSerializer",
    "serialize_verification",
]
