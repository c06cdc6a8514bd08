from rest_framework import serializers

from apps.users.models import Project, User
from .models import EscrowTransaction


class PartySerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["id", "username", "email"]


class ProjectEscrowSerializer(serializers.ModelSerializer):
    client = PartySerializer(read_only=True)
    freelancer = PartySerializer(read_only=True)

    class Meta:
        model = Project
        fields = [
            "id",
            "title",
            "status",
            "client",
            "freelancer",
            "escrow_status",
            "escrow_amount",
            "platform_fee_percentage",
            "platform_fee_amount",
            "freelancer_payout_amount",
            "payment_status",
            "payment_proof_url",
            "payment_method",
            "submitted_payment_amount",
            "payment_submitted_at",
            "escrow_verified_at",
            "contact_shared_at",
            "escrow_release_requested_at",
            "escrow_released_at",
        ]
        read_only_fields = fields


class EscrowTransactionSerializer(serializers.ModelSerializer):
    performed_by = PartySerializer(read_only=True)

    class Meta:
        model = EscrowTransaction
        fields = [
            "id",
            "project",
            "transaction_type",
            "amount",
            "transaction_id",
            "payment_method",
            "notes",
            "performed_by",
            "metadata",
            "created_at",
        ]
        read_only_fields = fields


class PaymentProofUploadSerializer(serializers.Serializer):
    file = serializers.FileField()


class SubmitPaymentSerializer(serializers.Serializer):
    payment_proof_url = serializers.CharField(max_length=500)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    payment_method = serializers.CharField(max_length=50, required=False, allow_blank=True)


class VerifyEscrowSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True)


class ReleaseEscrowSerializer(serializers.Serializer):
    transaction_id = serializers.CharField(max_length=255, required=False, allow_blank=True)
    payment_method = serializers.CharField(max_length=50, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class PlatformFeeQuerySerializer(serializers.Serializer):
    start = serializers.DateTimeField(required=False)
    end = serializers.DateTimeField(required=False)

    def validate(self, attrs):
        start, end = attrs.get("start"), attrs.get("end")
        if start and end and start > end:
            raise serializers.ValidationError("start must be before end.")
        return attrs
