from decimal import Decimal

from django.db.models import Sum

from apps.users.models import Project
from .models import EscrowTransaction


class EscrowQueueSelector:
    """
    Admin work queues. Verification and release queues are FIFO.
    """

    @staticmethod
    def _base():
        return Project.objects.select_related("client", "freelancer")

    @staticmethod
    def pending_verifications():
        return (
            EscrowQueueSelector._base()
            .filter(escrow_status="payment_submitted")
            .order_by("payment_submitted_at", "id")
        )

    @staticmethod
    def pending_releases():
        return (
            EscrowQueueSelector._base()
            .filter(escrow_status="pending_release")
            .order_by("escrow_release_requested_at", "id")
        )

    @staticmethod
    def active_escrows():
        return (
            EscrowQueueSelector._base()
            .filter(escrow_status__in=["verified_held", "pending_release"])
            .order_by("-escrow_verified_at", "-id")
        )


class PlatformRevenueSelector:
    """
    Aggregations for platform-wide revenue (ADMIN ONLY)
    """

    @staticmethod
    def total_platform_fees(start=None, end=None):
        qs = Project.objects.filter(escrow_status="released")

        if start:
            qs = qs.filter(escrow_released_at__gte=start)
        if end:
            qs = qs.filter(escrow_released_at__lte=end)

        totals = qs.aggregate(total=Sum("platform_fee_amount"))
        return {
            "released_projects": qs.count(),
            "total_platform_fees": totals["total"] or Decimal("0"),
        }


class LedgerSelector:
    @staticmethod
    def for_project(project):
        return (
            EscrowTransaction.objects
            .filter(project=project)
            .select_related("performed_by")
            .order_by("-created_at", "-id")
        )
