from django.contrib import admin
from .models import User, Project


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ("email", "username", "role", "is_active")
    list_filter = ("role", "is_active")
    search_fields = ("email", "username")


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "client", "freelancer", "status", "escrow_status", "escrow_amount")
    list_filter = ("status", "escrow_status", "payment_status")
    search_fields = ("title",)
    readonly_fields = (
        "escrow_amount",
        "platform_fee_percentage",
        "platform_fee_amount",
        "freelancer_payout_amount",
    )
