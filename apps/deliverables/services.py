import logging
import os

from django.db import transaction
from django.db.models import F, Prefetch
from django.utils import timezone

from apps.cores import storage
from apps.cores.exceptions import Forbidden, InvalidArgument, InvalidState, NotFound
from apps.notifications.services.create_notifications import notify_on_commit
from apps.users.models import Project
from apps.users.permissions import is_project_client, is_project_freelancer

from .constants import WORKING_PROJECT_STATUSES, project_file_prefix
from .models import Deliverable, DeliverableRevision
from .utils.file_validation import validate_project_file

logger = logging.getLogger(__name__)


def _lock_project(project_id):
    project = (
        Project.objects
        .select_for_update(of=("self",))
        .select_related("client")
        .filter(pk=project_id)
        .first()
    )
    if project is None:
        raise NotFound("Project not found.")
    return project


def _lock_deliverable(deliverable_id):
    """
    Lock the owning project row, then the deliverable row.
    """
    project_id = Deliverable.objects.filter(pk=deliverable_id).values_list("project_id", flat=True).first()
    if project_id is None:
        raise NotFound("Deliverable not found.")
    project = _lock_project(project_id)

    deliverable = (
        Deliverable.objects
        .select_for_update(of=("self",))
        .select_related("submitted_by")
        .filter(pk=deliverable_id)
        .first()
    )
    if deliverable is None:
        raise NotFound("Deliverable not found.")

    deliverable.project = project
    return deliverable


def _project_file(project, file_id):
    """
    A deliverable may only point at a file uploaded to its own project.
    """
    if not file_id:
        return None
    if not storage.is_within(file_id, project_file_prefix(project.id)):
        logger.warning("Rejected file reference %r on project #%s", file_id, project.id)
        raise InvalidArgument("File must be uploaded to this project before it can be attached.")
    if not storage.exists(file_id):
        raise InvalidArgument("File not found. Upload it again.")
    return file_id


def _discard_file_on_commit(project_id, file_id):
    if file_id and storage.is_within(file_id, project_file_prefix(project_id)):
        transaction.on_commit(lambda: storage.delete(file_id), robust=True)


def upload_project_file(project_id, actor, uploaded_file):
    """
    Store a file for the project's deliverables and return its path with a
    signed download URL. Only the assigned freelancer uploads.
    """
    project = Project.objects.filter(pk=project_id).first()
    if project is None:
        raise NotFound("Project not found.")

    if not is_project_freelancer(actor, project):
        raise Forbidden("Only the assigned freelancer can upload project files")

    if project.status not in WORKING_PROJECT_STATUSES:
        raise InvalidState(f"Project is {project.status}; files can no longer be uploaded.")

    validate_project_file(uploaded_file)

    path = storage.put(
        uploaded_file.read(),
        uploaded_file.content_type,
        prefix=project_file_prefix(project.id),
        extension=os.path.splitext(uploaded_file.name)[1].lower(),
    )
    logger.info("Project file %s uploaded to project #%s by user #%s", path, project.id, actor.id)
    return {
        "path": path,
        "url": storage.get_signed_url(path),
        "file_name": uploaded_file.name,
        "file_size": uploaded_file.size,
        "content_type": uploaded_file.content_type,
    }


def submit_deliverable(project_id, actor, title, description="", file_id=None):
    if not title or not title.strip():
        raise InvalidArgument("Title is required.")

    with transaction.atomic():
        project = _lock_project(project_id)

        if not is_project_freelancer(actor, project):
            raise Forbidden("Only the assigned freelancer can submit deliverables")

        if project.status not in WORKING_PROJECT_STATUSES:
            raise InvalidState(f"Project is {project.status}; deliverables can no longer be submitted.")

        deliverable = Deliverable.objects.create(
            project=project,
            file_id=_project_file(project, file_id),
            title=title.strip(),
            description=description or "",
            status="submitted",
            submitted_by=actor,
            revision_number=1,
        )

        notify_on_commit(
            project.client,
            "DELIVERABLE_SUBMITTED",
            "New deliverable submitted",
            message=f"'{deliverable.title}' is ready for your review.",
            data={"project_id": project.id, "deliverable_id": deliverable.id},
        )

    logger.info("Deliverable #%s submitted on project #%s", deliverable.id, project.id)
    return deliverable


def start_review(deliverable_id, actor):
    """
    Client opens a submitted deliverable (submitted -> under_review).
    """
    with transaction.atomic():
        deliverable = _lock_deliverable(deliverable_id)

        if not is_project_client(actor, deliverable.project):
            raise Forbidden("Only the client can review deliverables")

        if deliverable.status != "submitted":
            raise InvalidState(f"Deliverable is {deliverable.status}; only submitted work can be opened for review.")

        deliverable.status = "under_review"
        deliverable.save(update_fields=["status", "updated_at"])

    logger.info("Deliverable #%s under review", deliverable.id)
    return deliverable


def review_deliverable(deliverable_id, actor, status, notes=None):
    """
    Approve, reject or send back a deliverable. Requesting a revision
    records a pending DeliverableRevision in the same transaction.
    """
    if status not in Deliverable.REVIEW_OUTCOMES:
        raise InvalidArgument("Invalid status. Must be: approved, needs_revision, or rejected")

    if status == "needs_revision" and not (notes and notes.strip()):
        raise InvalidArgument("Revision notes are required when requesting a revision.")

    with transaction.atomic():
        deliverable = _lock_deliverable(deliverable_id)
        project = deliverable.project

        if not is_project_client(actor, project):
            raise Forbidden("Only the client can review deliverables")

        if deliverable.status not in Deliverable.REVIEWABLE_STATUSES:
            logger.warning(
                "Review of deliverable #%s refused: status is %s", deliverable.id, deliverable.status
            )
            raise InvalidState(f"Deliverable is {deliverable.status} and cannot be reviewed.")

        previous = deliverable.status
        deliverable.status = status
        deliverable.reviewed_by = actor
        deliverable.reviewed_at = timezone.now()
        deliverable.save(update_fields=["status", "reviewed_by", "reviewed_at", "updated_at"])

        if status == "needs_revision":
            DeliverableRevision.objects.create(
                deliverable=deliverable,
                requested_by=actor,
                revision_notes=notes.strip(),
                status="pending",
            )

        notify_on_commit(
            deliverable.submitted_by,
            "DELIVERABLE_REVIEWED",
            f"Deliverable {status.replace('_', ' ')}",
            message=notes or f"'{deliverable.title}' was marked {status.replace('_', ' ')}.",
            data={"project_id": project.id, "deliverable_id": deliverable.id, "status": status},
        )

    logger.info("Deliverable #%s reviewed: %s -> %s", deliverable.id, previous, status)
    return deliverable


def submit_revision(deliverable_id, actor, file_id=None):
    with transaction.atomic():
        deliverable = _lock_deliverable(deliverable_id)

        if actor is None or deliverable.submitted_by_id != actor.id:
            raise Forbidden("Only the original submitter can submit revisions")

        if deliverable.status != "needs_revision":
            raise InvalidState(f"Deliverable is {deliverable.status}; no revision was requested.")

        previous_file = deliverable.file_id
        new_file = _project_file(deliverable.project, file_id) or previous_file

        now = timezone.now()
        Deliverable.objects.filter(pk=deliverable.pk).update(
            file_id=new_file,
            status="submitted",
            revision_number=F("revision_number") + 1,
            submitted_at=now,
            reviewed_by=None,
            reviewed_at=None,
            updated_at=now,
        )
        closed = deliverable.revisions.filter(status="pending").update(
            status="completed",
            completed_at=now,
        )
        deliverable.refresh_from_db()

        if new_file != previous_file:
            _discard_file_on_commit(deliverable.project_id, previous_file)

        notify_on_commit(
            deliverable.project.client,
            "DELIVERABLE_SUBMITTED",
            "Revised deliverable submitted",
            message=f"'{deliverable.title}' revision {deliverable.revision_number} is ready for review.",
            data={"project_id": deliverable.project_id, "deliverable_id": deliverable.id},
        )

    logger.info(
        "Deliverable #%s resubmitted as revision %s (%d request(s) closed)",
        deliverable.id, deliverable.revision_number, closed,
    )
    return deliverable


def delete_deliverable(deliverable_id, actor):
    with transaction.atomic():
        deliverable = _lock_deliverable(deliverable_id)

        if actor is None or deliverable.submitted_by_id != actor.id:
            raise Forbidden("Only the submitter can delete this deliverable")

        if deliverable.status == "approved":
            raise InvalidState("Cannot delete an approved deliverable")

        deliverable_pk, project_id, file_id = deliverable.pk, deliverable.project_id, deliverable.file_id
        deliverable.delete()

        _discard_file_on_commit(project_id, file_id)

    logger.info("Deliverable #%s deleted by user #%s", deliverable_pk, actor.id)
    return {"success": True}


def project_deliverables(project):
    return (
        Deliverable.objects
        .filter(project=project)
        .select_related("submitted_by", "reviewed_by")
        .prefetch_related(
            Prefetch("revisions", queryset=DeliverableRevision.objects.select_related("requested_by"))
        )
    )


def get_deliverable(deliverable_id):
    deliverable = (
        Deliverable.objects
        .select_related("project", "submitted_by", "reviewed_by")
        .prefetch_related("revisions")
        .filter(pk=deliverable_id)
        .first()
    )
    if deliverable is None:
        raise NotFound("Deliverable not found.")
    return deliverable
