from django.db import models
from apps.users.models import User, Project
from django.utils import timezone


class Proposal(models.Model):
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('negotiating', 'Negotiating'),
        ('final_offer', 'Final Offer'),
        ('accepted', 'Accepted'),
        ('rejected', 'Rejected'),
        ('withdrawn', 'Withdrawn'),
    ]

    OPEN_STATUSES = ('pending', 'negotiating', 'final_offer')
    TERMINAL_STATUSES = ('accepted', 'rejected', 'withdrawn')

    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name="proposals"
    )

    freelancer = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="proposals"
    )

    cover_letter = models.TextField()

    proposed_budget = models.DecimalField(max_digits=12, decimal_places=2)
    estimated_duration = models.CharField(max_length=50, blank=True, null=True)

    # First-ever proposed amount, written once on the first counter-offer
    original_budget = models.DecimalField(
        max_digits=12, decimal_places=2,
        null=True, blank=True
    )
    negotiation_count = models.PositiveSmallIntegerField(default=0)

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default='pending'
    )

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('project', 'freelancer')
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['project'],
                condition=models.Q(status='accepted'),
                name='one_accepted_proposal_per_project',
            ),
        ]

    def __str__(self):
        return f"{self.freelancer.username} → {self.project.title}"

    @property
    def is_open(self):
        return self.status in self.OPEN_STATUSES


class NegotiationEntry(models.Model):
    """
    One counter-offer round. Rows are only ever appended; `round_number` is
    unique per proposal so a racing double increment fails at the database.
    """

    ACTOR_ROLES = [
        ('client', 'Client'),
        ('freelancer', 'Freelancer'),
    ]

    proposal = models.ForeignKey(
        Proposal,
        on_delete=models.CASCADE,
        related_name="negotiation_history"
    )
    round_number = models.PositiveSmallIntegerField()
    actor = models.ForeignKey(User, on_delete=models.CASCADE, related_name="+")
    actor_role = models.CharField(max_length=20, choices=ACTOR_ROLES)

    old_budget = models.DecimalField(max_digits=12, decimal_places=2)
    new_budget = models.DecimalField(max_digits=12, decimal_places=2)
    old_duration = models.CharField(max_length=50, blank=True, null=True)
    new_duration = models.CharField(max_length=50, blank=True, null=True)
    message = models.TextField()

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['round_number']
        unique_together = ('proposal', 'round_number')

    def __str__(self):
        return f"Round {self.round_number} on proposal #{self.proposal_id} by {self.actor_role}"
