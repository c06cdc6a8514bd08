from django.contrib import admin
from .models import EscrowTransaction


@admin.register(EscrowTransaction)
class EscrowTransactionAdmin(admin.ModelAdmin):
    list_display = ("id", "project", "transaction_type", "amount", "performed_by", "created_at")
    list_filter = ("transaction_type",)
    search_fields = ("transaction_id", "notes")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
