from django.contrib import admin
from .models import NegotiationEntry, Proposal


class NegotiationEntryInline(admin.TabularInline):
    model = NegotiationEntry
    extra = 0
    can_delete = False
    readonly_fields = (
        "round_number", "actor", "actor_role", "old_budget", "new_budget",
        "old_duration", "new_duration", "message", "created_at",
    )


@admin.register(Proposal)
class ProposalAdmin(admin.ModelAdmin):
    list_display = ("id", "project", "freelancer", "proposed_budget", "negotiation_count", "status", "created_at")
    list_filter = ("status",)
    inlines = [NegotiationEntryInline]
