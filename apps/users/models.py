from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.utils import timezone


class UserManager(BaseUserManager):
    """Custom user manager supporting email authentication."""

    def create_user(self, email, username, password=None, **extra_fields):
        if not email:
            raise ValueError("Email is required")
        if not username:
            raise ValueError("Username is required")

        email = self.normalize_email(email)

        user = self.model(
            email=email,
            username=username,
            **extra_fields
        )
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, username, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("role", "admin")  # Force admin role

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self.create_user(email, username, password, **extra_fields)


class User(AbstractUser):
    ROLE_CHOICES = (
        ("client", "Client"),
        ("freelancer", "Freelancer"),
        ("admin", "Admin"),
    )

    email = models.EmailField(unique=True, db_index=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default="client")
    created_at = models.DateTimeField(default=timezone.now)

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    class Meta:
        db_table = "users"
        indexes = [
            models.Index(fields=["email"]),
            models.Index(fields=["role", "is_active"]),
        ]

    def __str__(self):
        return f"{self.email} ({self.role})"

    def has_admin_access(self):
        return self.role == "admin" or self.is_staff


class Project(models.Model):
    """
    Contract between one client and at most one assigned freelancer.
    Root aggregate for proposals, escrow ledger rows and deliverables; every
    escrow / status mutation locks this row first.
    """

    STATUS = [
        ('open', 'Open'),
        ('in_progress', 'In Progress'),
        ('in_review', 'In Review'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    ESCROW_STATUS = [
        ('pending_payment', 'Pending Payment'),
        ('payment_submitted', 'Payment Submitted'),
        ('verified_held', 'Verified & Held'),
        ('pending_release', 'Pending Release'),
        ('released', 'Released'),
        ('disputed', 'Disputed'),
        ('refunded', 'Refunded'),
    ]

    PAYMENT_STATUS = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('refunded', 'Refunded'),
    ]

    client = models.ForeignKey(User, on_delete=models.CASCADE, related_name="projects")
    freelancer = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="assigned_projects",
    )

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    budget = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    duration = models.CharField(max_length=50, blank=True)

    status = models.CharField(max_length=20, choices=STATUS, default='open')

    # Escrow figures, computed once at proposal acceptance
    escrow_status = models.CharField(max_length=20, choices=ESCROW_STATUS, null=True, blank=True)
    escrow_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    platform_fee_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True,
        help_text="Platform fee at the time the proposal was accepted"
    )
    platform_fee_amount = models.DecimalField(max_digits=14, decimal_places=4, null=True, blank=True)
    freelancer_payout_amount = models.DecimalField(max_digits=14, decimal_places=4, null=True, blank=True)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS, default='pending')

    # Payment proof & transition stamps
    payment_proof_url = models.CharField(max_length=500, blank=True)
    payment_method = models.CharField(max_length=50, blank=True)
    submitted_payment_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    payment_submitted_at = models.DateTimeField(null=True, blank=True)
    escrow_verified_at = models.DateTimeField(null=True, blank=True)
    escrow_verified_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    contact_shared_at = models.DateTimeField(null=True, blank=True)
    escrow_release_requested_at = models.DateTimeField(null=True, blank=True)
    escrow_released_at = models.DateTimeField(null=True, blank=True)
    escrow_released_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"]),
            models.Index(fields=["escrow_status"]),
        ]

    def __str__(self):
        return f"Project: {self.title} by {self.client.username}"

    @property
    def is_open(self):
        return self.status == "open"
