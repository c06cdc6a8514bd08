"""
Tests for the deliverable review cycle.
"""

import pytest
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import connection
from django.test.utils import CaptureQueriesContext

from apps.cores import storage
from apps.cores.exceptions import Forbidden, InvalidArgument, InvalidState, NotFound
from apps.deliverables import services
from apps.deliverables.constants import project_file_prefix
from apps.deliverables.models import Deliverable, DeliverableRevision

from .conftest import DeliverableFactory, FreelancerFactory, ProjectFactory


pytestmark = pytest.mark.django_db


def _upload(project, content=b"zip bytes"):
    return storage.put(content, "application/zip", prefix=project_file_prefix(project.id))


@pytest.fixture
def first_file(accepted_project):
    return _upload(accepted_project, b"first cut")


@pytest.fixture
def deliverable(accepted_project, freelancer, first_file):
    return services.submit_deliverable(
        accepted_project.id, freelancer, title="v1", description="Homepage mockups", file_id=first_file
    )


def _request_revision(deliverable, client_user, notes="Fix the header"):
    return services.review_deliverable(deliverable.id, client_user, "needs_revision", notes=notes)


# ============================================================================
# SUBMIT
# ============================================================================

class TestSubmitDeliverable:

    def test_creates_submitted_deliverable(self, deliverable, freelancer, first_file):
        assert deliverable.status == 'submitted'
        assert deliverable.revision_number == 1
        assert deliverable.submitted_by == freelancer
        assert deliverable.file_id == first_file

    def test_only_assigned_freelancer(self, accepted_project, client_user):
        with pytest.raises(Forbidden):
            services.submit_deliverable(accepted_project.id, client_user, title="v1")
        with pytest.raises(Forbidden):
            services.submit_deliverable(accepted_project.id, FreelancerFactory(), title="v1")

    def test_missing_project(self, freelancer):
        with pytest.raises(NotFound):
            services.submit_deliverable(999999, freelancer, title="v1")

    def test_title_required(self, accepted_project, freelancer):
        with pytest.raises(InvalidArgument):
            services.submit_deliverable(accepted_project.id, freelancer, title=" ")

    def test_unassigned_project(self, client_user, freelancer):
        project = ProjectFactory(client=client_user)

        with pytest.raises(Forbidden):
            services.submit_deliverable(project.id, freelancer, title="v1")

    def test_completed_project(self, accepted_project, freelancer):
        accepted_project.status = 'completed'
        accepted_project.save()

        with pytest.raises(InvalidState):
            services.submit_deliverable(accepted_project.id, freelancer, title="late")

    def test_rejects_file_from_another_area(self, accepted_project, freelancer, client_user):
        from apps.escrow.services import EscrowService

        proof = storage.put(b"receipt", "application/pdf", prefix=f"payment-proofs/{accepted_project.id}")
        EscrowService.submit_payment_proof(accepted_project.id, client_user, proof_url=proof, amount="950.00")

        with pytest.raises(InvalidArgument):
            services.submit_deliverable(accepted_project.id, freelancer, title="v1", file_id=proof)

        assert not Deliverable.objects.exists()
        assert default_storage.exists(proof)

    @pytest.mark.parametrize("suffix", ["../../payment-proofs/1/receipt.pdf", "../9/file.zip", "a/./b.zip"])
    def test_rejects_paths_escaping_the_project_folder(self, accepted_project, freelancer, suffix):
        file_id = f"{project_file_prefix(accepted_project.id)}/{suffix}"

        with pytest.raises(InvalidArgument):
            services.submit_deliverable(accepted_project.id, freelancer, title="v1", file_id=file_id)

    def test_rejects_file_of_another_project(self, accepted_project, freelancer):
        other = ProjectFactory(freelancer=freelancer, status='in_progress')
        path = _upload(other)

        with pytest.raises(InvalidArgument):
            services.submit_deliverable(accepted_project.id, freelancer, title="v1", file_id=path)

    def test_rejects_missing_file(self, accepted_project, freelancer):
        file_id = f"{project_file_prefix(accepted_project.id)}/never-uploaded.zip"

        with pytest.raises(InvalidArgument):
            services.submit_deliverable(accepted_project.id, freelancer, title="v1", file_id=file_id)


# ============================================================================
# PROJECT FILES
# ============================================================================

class TestUploadProjectFile:

    def test_stores_under_project_folder(self, accepted_project, freelancer):
        upload = SimpleUploadedFile("mockups.zip", b"PK zip", content_type="application/zip")

        stored = services.upload_project_file(accepted_project.id, freelancer, upload)

        assert stored["path"].startswith(f"project-files/{accepted_project.id}/")
        assert stored["path"].endswith(".zip")
        assert stored["file_name"] == "mockups.zip"
        assert storage.resolve_signed_url(stored["url"].split("/")[-2]) == stored["path"]
        with default_storage.open(stored["path"]) as fh:
            assert fh.read() == b"PK zip"

    def test_uploaded_path_is_accepted_by_submit(self, accepted_project, freelancer):
        upload = SimpleUploadedFile("brief.pdf", b"%PDF", content_type="application/pdf")
        stored = services.upload_project_file(accepted_project.id, freelancer, upload)

        deliverable = services.submit_deliverable(accepted_project.id, freelancer, title="v1", file_id=stored["path"])

        assert deliverable.file_id == stored["path"]

    def test_only_assigned_freelancer(self, accepted_project, client_user):
        upload = SimpleUploadedFile("mockups.zip", b"PK", content_type="application/zip")

        with pytest.raises(Forbidden):
            services.upload_project_file(accepted_project.id, client_user, upload)
        with pytest.raises(Forbidden):
            services.upload_project_file(accepted_project.id, FreelancerFactory(), upload)

    def test_rejects_unsupported_type(self, accepted_project, freelancer):
        upload = SimpleUploadedFile("setup.exe", b"MZ", content_type="application/octet-stream")

        with pytest.raises(InvalidArgument):
            services.upload_project_file(accepted_project.id, freelancer, upload)

    def test_missing_project(self, freelancer):
        upload = SimpleUploadedFile("mockups.zip", b"PK", content_type="application/zip")

        with pytest.raises(NotFound):
            services.upload_project_file(999999, freelancer, upload)


# ============================================================================
# REVIEW
# ============================================================================

class TestReviewDeliverable:

    @pytest.mark.parametrize("outcome", ["approved", "rejected"])
    def test_terminal_outcomes(self, deliverable, client_user, outcome):
        reviewed = services.review_deliverable(deliverable.id, client_user, outcome)

        assert reviewed.status == outcome
        assert reviewed.reviewed_by == client_user
        assert reviewed.reviewed_at is not None
        assert not reviewed.revisions.exists()

    def test_needs_revision_creates_pending_request(self, deliverable, client_user):
        reviewed = _request_revision(deliverable, client_user)

        revision = reviewed.revisions.get()
        assert reviewed.status == 'needs_revision'
        assert revision.status == 'pending'
        assert revision.requested_by == client_user
        assert revision.revision_notes == "Fix the header"

    def test_needs_revision_requires_notes(self, deliverable, client_user):
        with pytest.raises(InvalidArgument):
            services.review_deliverable(deliverable.id, client_user, "needs_revision", notes="")

        deliverable.refresh_from_db()
        assert deliverable.status == 'submitted'

    def test_unknown_outcome(self, deliverable, client_user):
        with pytest.raises(InvalidArgument):
            services.review_deliverable(deliverable.id, client_user, "submitted")

    def test_only_project_client(self, deliverable, freelancer, platform_admin):
        with pytest.raises(Forbidden):
            services.review_deliverable(deliverable.id, freelancer, "approved")
        with pytest.raises(Forbidden):
            services.review_deliverable(deliverable.id, platform_admin, "approved")

    def test_review_after_start_review(self, deliverable, client_user):
        opened = services.start_review(deliverable.id, client_user)
        assert opened.status == 'under_review'

        assert services.review_deliverable(deliverable.id, client_user, "approved").status == 'approved'

    def test_start_review_twice(self, deliverable, client_user):
        services.start_review(deliverable.id, client_user)

        with pytest.raises(InvalidState):
            services.start_review(deliverable.id, client_user)

    def test_terminal_deliverable_cannot_be_reviewed_again(self, deliverable, client_user):
        services.review_deliverable(deliverable.id, client_user, "approved")

        with pytest.raises(InvalidState):
            services.review_deliverable(deliverable.id, client_user, "rejected")

    def test_missing_deliverable(self, client_user):
        with pytest.raises(NotFound):
            services.review_deliverable(999999, client_user, "approved")


# ============================================================================
# REVISIONS
# ============================================================================

class TestSubmitRevision:

    def test_resubmission(self, deliverable, client_user, freelancer, accepted_project):
        _request_revision(deliverable, client_user)
        second_file = _upload(accepted_project, b"second cut")

        resubmitted = services.submit_revision(deliverable.id, freelancer, file_id=second_file)

        assert resubmitted.status == 'submitted'
        assert resubmitted.revision_number == 2
        assert resubmitted.reviewed_by is None
        assert resubmitted.reviewed_at is None
        assert resubmitted.file_id == second_file
        assert list(resubmitted.revisions.values_list('status', flat=True)) == ['completed']
        assert resubmitted.revisions.get().completed_at is not None

    def test_keeps_file_when_none_given(
        self, django_capture_on_commit_callbacks, deliverable, client_user, freelancer, first_file
    ):
        _request_revision(deliverable, client_user)

        with django_capture_on_commit_callbacks(execute=True):
            assert services.submit_revision(deliverable.id, freelancer).file_id == first_file

        assert default_storage.exists(first_file)

    def test_replaced_file_is_removed_after_commit(
        self, django_capture_on_commit_callbacks, deliverable, client_user, freelancer, accepted_project, first_file
    ):
        _request_revision(deliverable, client_user)
        second_file = _upload(accepted_project, b"second cut")

        with django_capture_on_commit_callbacks(execute=True):
            services.submit_revision(deliverable.id, freelancer, file_id=second_file)

        assert not default_storage.exists(first_file)
        assert default_storage.exists(second_file)

    def test_revision_file_must_belong_to_project(self, deliverable, client_user, freelancer, first_file):
        _request_revision(deliverable, client_user)
        foreign = storage.put(b"receipt", "application/pdf", prefix="payment-proofs/1")

        with pytest.raises(InvalidArgument):
            services.submit_revision(deliverable.id, freelancer, file_id=foreign)

        deliverable.refresh_from_db()
        assert deliverable.status == 'needs_revision'
        assert deliverable.file_id == first_file

    def test_revision_history_is_kept(self, deliverable, client_user, freelancer):
        _request_revision(deliverable, client_user, notes="first pass")
        services.submit_revision(deliverable.id, freelancer)
        _request_revision(deliverable, client_user, notes="second pass")
        resubmitted = services.submit_revision(deliverable.id, freelancer)

        assert resubmitted.revision_number == 3
        assert list(resubmitted.revisions.values_list('revision_notes', 'status')) == [
            ("first pass", 'completed'),
            ("second pass", 'completed'),
        ]

    def test_only_original_submitter(self, deliverable, client_user):
        _request_revision(deliverable, client_user)

        with pytest.raises(Forbidden):
            services.submit_revision(deliverable.id, client_user)

    def test_requires_needs_revision(self, deliverable, freelancer):
        with pytest.raises(InvalidState):
            services.submit_revision(deliverable.id, freelancer)

        deliverable.refresh_from_db()
        assert deliverable.revision_number == 1


# ============================================================================
# DELETE
# ============================================================================

class TestDeleteDeliverable:

    def test_submitter_may_delete(self, deliverable, freelancer):
        assert services.delete_deliverable(deliverable.id, freelancer) == {"success": True}
        assert not Deliverable.objects.filter(id=deliverable.id).exists()

    def test_delete_removes_stored_file(self, django_capture_on_commit_callbacks, accepted_project, freelancer):
        path = _upload(accepted_project)
        deliverable = services.submit_deliverable(accepted_project.id, freelancer, title="v1", file_id=path)

        with django_capture_on_commit_callbacks(execute=True):
            services.delete_deliverable(deliverable.id, freelancer)

        assert not default_storage.exists(path)

    def test_delete_cascades_revisions(self, deliverable, client_user, freelancer):
        _request_revision(deliverable, client_user)

        services.delete_deliverable(deliverable.id, freelancer)

        assert not DeliverableRevision.objects.exists()

    def test_approved_is_never_deleted(self, deliverable, client_user, freelancer):
        services.review_deliverable(deliverable.id, client_user, "approved")

        with pytest.raises(InvalidState):
            services.delete_deliverable(deliverable.id, freelancer)
        with pytest.raises(Forbidden):
            services.delete_deliverable(deliverable.id, client_user)

        assert Deliverable.objects.filter(id=deliverable.id).exists()

    def test_other_users_are_forbidden(self, deliverable, client_user):
        with pytest.raises(Forbidden):
            services.delete_deliverable(deliverable.id, client_user)

    def test_never_removes_files_outside_the_project_folder(
        self, django_capture_on_commit_callbacks, accepted_project, freelancer
    ):
        proof = storage.put(b"receipt", "application/pdf", prefix=f"payment-proofs/{accepted_project.id}")
        deliverable = DeliverableFactory(project=accepted_project, file_id=proof)

        with django_capture_on_commit_callbacks(execute=True):
            services.delete_deliverable(deliverable.id, freelancer)

        assert not Deliverable.objects.filter(id=deliverable.id).exists()
        assert default_storage.exists(proof)


# ============================================================================
# LOCKING
# ============================================================================

def _first_row_select(queries, table):
    return next(i for i, q in enumerate(queries) if q["sql"].startswith(f'SELECT "{table}"."id"'))


@pytest.mark.parametrize("operation", ["start_review", "review", "delete"])
def test_project_row_is_locked_before_deliverable(operation, deliverable, client_user, freelancer):
    calls = {
        "start_review": lambda: services.start_review(deliverable.id, client_user),
        "review": lambda: services.review_deliverable(deliverable.id, client_user, "approved"),
        "delete": lambda: services.delete_deliverable(deliverable.id, freelancer),
    }

    with CaptureQueriesContext(connection) as ctx:
        calls[operation]()

    assert _first_row_select(ctx.captured_queries, "users_project") < _first_row_select(
        ctx.captured_queries, "deliverables_deliverable"
    )


# ============================================================================
# QUERIES
# ============================================================================

def test_project_deliverables_newest_first(accepted_project, freelancer):
    first = DeliverableFactory(project=accepted_project)
    second = DeliverableFactory(project=accepted_project)

    assert list(services.project_deliverables(accepted_project)) == [second, first]


def test_get_deliverable_missing():
    with pytest.raises(NotFound):
        services.get_deliverable(999999)


# ============================================================================
# SCENARIO
# ============================================================================

@pytest.mark.workflow
def test_revision_cycle(accepted_project, client_user, freelancer):
    deliverable = services.submit_deliverable(accepted_project.id, freelancer, title="v1")
    assert deliverable.revision_number == 1

    services.review_deliverable(deliverable.id, client_user, "needs_revision", notes="Colours are off")
    revision = DeliverableRevision.objects.get(deliverable=deliverable)
    assert revision.status == 'pending'

    deliverable = services.submit_revision(deliverable.id, freelancer)

    revision.refresh_from_db()
    assert deliverable.revision_number == 2
    assert deliverable.reviewed_by is None
    assert deliverable.reviewed_at is None
    assert revision.status == 'completed'
