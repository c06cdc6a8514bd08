from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class EscrowTransaction(models.Model):
    """
    Immutable ledger row for one escrow-affecting event.
    """

    TRANSACTION_TYPES = (
        ("proposal_accepted", "Proposal Accepted"),
        ("payment_submitted", "Payment Submitted"),
        ("payment_verified", "Payment Verified"),
        ("release_requested", "Release Requested"),
        ("payment_released", "Payment Released"),
        ("refund_issued", "Refund Issued"),
        ("dispute_opened", "Dispute Opened"),
    )

    project = models.ForeignKey(
        "users.Project",
        on_delete=models.PROTECT,
        related_name="escrow_transactions",
    )

    transaction_type = models.CharField(max_length=30, choices=TRANSACTION_TYPES)
    amount = models.DecimalField(max_digits=14, decimal_places=4, null=True, blank=True)

    # External payment details
    transaction_id = models.CharField(max_length=255, blank=True)
    payment_method = models.CharField(max_length=50, blank=True)
    notes = models.TextField(blank=True)

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="escrow_transactions",
    )

    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["project", "transaction_type"]),
        ]

    def __str__(self):
        return f"EscrowTransaction #{self.id} | {self.transaction_type} | Project #{self.project_id}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValidationError("Escrow ledger entries are append-only.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Escrow ledger entries cannot be deleted.")
