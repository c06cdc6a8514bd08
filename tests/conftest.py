"""
Shared pytest fixtures and factory_boy factories.

Notifications are scheduled with transaction.on_commit, so they only run in
tests that use `django_capture_on_commit_callbacks(execute=True)`.
"""

import uuid
from decimal import Decimal

import factory
import pytest
from factory.django import DjangoModelFactory
from rest_framework.test import APIClient

from FreelanceEscrow import celery_app


# ============================================================================
# FACTORIES
# ============================================================================

class UserFactory(DjangoModelFactory):
    class Meta:
        model = 'users.User'
        django_get_or_create = ('email',)

    username = factory.LazyAttribute(lambda o: f"user_{uuid.uuid4().hex[:8]}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    role = 'client'
    is_active = True


class ClientFactory(UserFactory):
    role = 'client'


class FreelancerFactory(UserFactory):
    role = 'freelancer'


class AdminFactory(UserFactory):
    role = 'admin'
    is_staff = True


class ProjectFactory(DjangoModelFactory):
    class Meta:
        model = 'users.Project'

    client = factory.SubFactory(ClientFactory)
    title = factory.Sequence(lambda n: f"Project {n}")
    description = "Build a landing page"
    budget = Decimal('1000.00')
    duration = "2 weeks"
    status = 'open'


class ProposalFactory(DjangoModelFactory):
    class Meta:
        model = 'applications.Proposal'

    project = factory.SubFactory(ProjectFactory)
    freelancer = factory.SubFactory(FreelancerFactory)
    cover_letter = "I have shipped this kind of work before."
    proposed_budget = Decimal('1000.00')
    estimated_duration = "2 weeks"
    status = 'pending'


class DeliverableFactory(DjangoModelFactory):
    class Meta:
        model = 'deliverables.Deliverable'

    project = factory.SubFactory(ProjectFactory)
    submitted_by = factory.LazyAttribute(lambda o: o.project.freelancer)
    title = factory.Sequence(lambda n: f"Deliverable {n}")
    description = "First cut"
    status = 'submitted'
    revision_number = 1


# ============================================================================
# ENVIRONMENT
# ============================================================================

@pytest.fixture(autouse=True)
def eager_celery():
    """
    Run notification e-mails inline. The app reads its settings under the
    CELERY_ namespace, so the namespaced key is the one that takes effect.
    """
    previous = celery_app.conf.CELERY_TASK_ALWAYS_EAGER
    celery_app.conf.CELERY_TASK_ALWAYS_EAGER = True
    yield
    celery_app.conf.CELERY_TASK_ALWAYS_EAGER = previous


@pytest.fixture(autouse=True)
def blob_storage(settings, tmp_path):
    settings.MEDIA_ROOT = str(tmp_path / "media")
    return settings.MEDIA_ROOT


# ============================================================================
# USERS
# ============================================================================

@pytest.fixture
def client_user(db):
    return ClientFactory()


@pytest.fixture
def freelancer(db):
    return FreelancerFactory()


@pytest.fixture
def platform_admin(db):
    return AdminFactory()


@pytest.fixture
def api_client(db):
    """Provide a DRF API test client."""
    return APIClient()


@pytest.fixture
def as_user(api_client):
    """Return a client authenticated as the given user."""
    def _as(user):
        api_client.force_authenticate(user=user)
        return api_client
    return _as


# ============================================================================
# DOMAIN STATE
# ============================================================================

@pytest.fixture
def project(client_user):
    return ProjectFactory(client=client_user)


@pytest.fixture
def proposal(project, freelancer):
    return ProposalFactory(project=project, freelancer=freelancer, proposed_budget=Decimal('950.00'))


@pytest.fixture
def accepted_project(proposal, client_user):
    """Project with an accepted 950.00 proposal, awaiting payment."""
    from apps.applications.services.negotiation import accept_proposal

    return accept_proposal(proposal.id, proposal.project_id, client_user)


@pytest.fixture
def funded_project(accepted_project, client_user, platform_admin):
    """Project whose escrow is verified and held."""
    from apps.escrow.services import EscrowService

    EscrowService.submit_payment_proof(
        accepted_project.id,
        client_user,
        proof_url="payment-proofs/1/receipt.pdf",
        amount=Decimal('950.00'),
        method="bank_transfer",
    )
    return EscrowService.verify_escrow(accepted_project.id, platform_admin, notes="Funds received")


@pytest.fixture
def approved_deliverable(funded_project):
    return DeliverableFactory(project=funded_project, status='approved')
