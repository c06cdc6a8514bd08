from django.contrib import admin
from .models import Deliverable, DeliverableRevision


class DeliverableRevisionInline(admin.TabularInline):
    model = DeliverableRevision
    extra = 0
    readonly_fields = ("requested_by", "revision_notes", "status", "created_at", "completed_at")


@admin.register(Deliverable)
class DeliverableAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "project", "status", "revision_number", "submitted_by", "submitted_at")
    list_filter = ("status",)
    inlines = [DeliverableRevisionInline]
