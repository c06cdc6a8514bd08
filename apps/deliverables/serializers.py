from rest_framework import serializers

from apps.cores import storage
from apps.escrow.serializers import PartySerializer
from .models import Deliverable, DeliverableRevision


class DeliverableRevisionSerializer(serializers.ModelSerializer):
    requested_by = PartySerializer(read_only=True)

    class Meta:
        model = DeliverableRevision
        fields = [
            "id",
            "requested_by",
            "revision_notes",
            "status",
            "created_at",
            "completed_at",
        ]
        read_only_fields = fields


class DeliverableSerializer(serializers.ModelSerializer):
    submitted_by = PartySerializer(read_only=True)
    reviewed_by = PartySerializer(read_only=True)
    revisions = DeliverableRevisionSerializer(many=True, read_only=True)
    file_url = serializers.SerializerMethodField()

    class Meta:
        model = Deliverable
        fields = [
            "id",
            "project",
            "file_id",
            "file_url",
            "title",
            "description",
            "status",
            "revision_number",
            "submitted_by",
            "submitted_at",
            "reviewed_by",
            "reviewed_at",
            "revisions",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_file_url(self, obj):
        if not obj.file_id:
            return None
        return storage.get_signed_url(obj.file_id)


class ProjectFileUploadSerializer(serializers.Serializer):
    file = serializers.FileField()


class DeliverableSubmitSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    file_id = serializers.CharField(max_length=255, required=False, allow_blank=True)


class DeliverableReviewSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=list(Deliverable.REVIEW_OUTCOMES))
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs["status"] == "needs_revision" and not attrs.get("notes", "").strip():
            raise serializers.ValidationError(
                {"notes": "Revision notes are required when requesting a revision."}
            )
        return attrs


class DeliverableRevisionSubmitSerializer(serializers.Serializer):
    file_id = serializers.CharField(max_length=255, required=False, allow_blank=True)
