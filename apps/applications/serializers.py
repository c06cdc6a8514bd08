from rest_framework import serializers

from apps.escrow.serializers import PartySerializer
from apps.users.models import Project
from .models import NegotiationEntry, Proposal


# ---------------- Negotiation History ----------------
class NegotiationEntrySerializer(serializers.ModelSerializer):
    actor = PartySerializer(read_only=True)

    class Meta:
        model = NegotiationEntry
        fields = [
            'round_number',
            'actor',
            'actor_role',
            'old_budget',
            'new_budget',
            'old_duration',
            'new_duration',
            'message',
            'created_at',
        ]
        read_only_fields = fields


# ---------------- Project Summary ----------------
class ProjectSummarySerializer(serializers.ModelSerializer):
    client = PartySerializer(read_only=True)

    class Meta:
        model = Project
        fields = ['id', 'title', 'status', 'budget', 'client', 'escrow_status']
        read_only_fields = fields


# ---------------- Proposal ----------------
class ProposalSerializer(serializers.ModelSerializer):
    freelancer = PartySerializer(read_only=True)
    negotiation_history = NegotiationEntrySerializer(many=True, read_only=True)
    rounds_remaining = serializers.SerializerMethodField()

    class Meta:
        model = Proposal
        fields = [
            'id',
            'project',
            'freelancer',
            'cover_letter',
            'proposed_budget',
            'estimated_duration',
            'original_budget',
            'negotiation_count',
            'rounds_remaining',
            'status',
            'negotiation_history',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_rounds_remaining(self, obj):
        max_rounds = self.context.get('max_rounds', 2)
        if not obj.is_open:
            return 0
        return max(max_rounds - obj.negotiation_count, 0)


class MyProposalSerializer(ProposalSerializer):
    project = ProjectSummarySerializer(read_only=True)


# ---------------- Input ----------------
class ProposalCreateSerializer(serializers.Serializer):
    proposed_budget = serializers.DecimalField(max_digits=12, decimal_places=2)
    estimated_duration = serializers.CharField(max_length=50, required=False, allow_blank=True)
    cover_letter = serializers.CharField()


class CounterOfferSerializer(serializers.Serializer):
    proposed_budget = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    estimated_duration = serializers.CharField(max_length=50, required=False, allow_blank=True)
    message = serializers.CharField(allow_blank=True)


class AcceptProposalSerializer(serializers.Serializer):
    project_id = serializers.IntegerField(required=False)
