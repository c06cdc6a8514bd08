from django.db import models
from django.conf import settings
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class Deliverable(models.Model):
    STATUS_CHOICES = (
        ("submitted", "Submitted"),
        ("under_review", "Under Review"),
        ("needs_revision", "Needs Revision"),
        ("approved", "Approved"),
        ("rejected", "Rejected"),
    )

    REVIEW_OUTCOMES = ("approved", "needs_revision", "rejected")
    REVIEWABLE_STATUSES = ("submitted", "under_review")

    project = models.ForeignKey(
        "users.Project",
        on_delete=models.CASCADE,
        related_name="deliverables"
    )

    # Opaque reference into the project's file storage
    file_id = models.CharField(max_length=255, blank=True, null=True)

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default="submitted"
    )
    revision_number = models.PositiveIntegerField(default=1)

    submitted_by = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="submitted_deliverables"
    )
    submitted_at = models.DateTimeField(default=timezone.now)

    reviewed_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_deliverables"
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["project", "status"]),
        ]

    def __str__(self):
        return f"{self.title} (rev {self.revision_number}) | Project #{self.project_id}"


class DeliverableRevision(models.Model):
    STATUS_CHOICES = (
        ("pending", "Pending"),
        ("in_progress", "In Progress"),
        ("completed", "Completed"),
    )

    deliverable = models.ForeignKey(
        Deliverable,
        on_delete=models.CASCADE,
        related_name="revisions"
    )
    requested_by = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="requested_revisions"
    )
    revision_notes = models.TextField()
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default="pending"
    )

    created_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"Revision request on deliverable #{self.deliverable_id} ({self.status})"
