import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.cores.exceptions import Forbidden, InvalidArgument, InvalidState, NotFound
from apps.cores.money import to_amount
from apps.escrow.ledger import record_transaction_safely
from apps.notifications.services.create_notifications import notify_on_commit
from apps.users.models import Project, User
from apps.users.permissions import is_platform_admin, is_project_client

logger = logging.getLogger(__name__)


class EscrowService:
    """
    Per-project escrow state machine:

        pending_payment -> payment_submitted -> verified_held
                        -> pending_release -> released

    Every transition locks the project row and then performs a conditional
    update on the expected predecessor, so two concurrent callers produce
    exactly one success and one InvalidState.
    """

    @staticmethod
    def _lock_project(project_id) -> Project:
        project = Project.objects.select_for_update(of=("self",)).filter(pk=project_id).first()
        if project is None:
            raise NotFound("Project not found.")
        return project

    @staticmethod
    def _advance(project: Project, expected: str, target: str, **fields) -> Project:
        updated = Project.objects.filter(
            pk=project.pk,
            escrow_status=expected,
        ).update(
            escrow_status=target,
            updated_at=timezone.now(),
            **fields,
        )
        if updated != 1:
            project.refresh_from_db(fields=["escrow_status"])
            logger.warning(
                "Escrow transition %s -> %s refused for project #%s (now %s)",
                expected, target, project.pk, project.escrow_status,
            )
            raise InvalidState(
                f"Escrow is {project.escrow_status or 'not initialised'}; expected {expected}."
            )

        project.refresh_from_db()
        logger.info("Escrow on project #%s: %s -> %s", project.pk, expected, target)
        return project

    @staticmethod
    def _require_status(project: Project, expected: str, message: str):
        if project.escrow_status != expected:
            logger.warning(
                "Escrow precondition failed on project #%s: %s != %s",
                project.pk, project.escrow_status, expected,
            )
            raise InvalidState(message)

    @staticmethod
    def _admins():
        return User.objects.filter(role="admin", is_active=True)

    @staticmethod
    def submit_payment_proof(project_id, actor, proof_url, amount, method=None) -> Project:
        """
        Client records proof of payment; the escrow waits for admin review.
        """
        if not proof_url:
            raise InvalidArgument("Payment proof is required.")
        paid = to_amount(amount)

        with transaction.atomic():
            project = EscrowService._lock_project(project_id)

            if not is_project_client(actor, project):
                raise Forbidden("Only the project client can submit payment.")

            EscrowService._require_status(
                project, "pending_payment", "Payment can only be submitted while awaiting payment."
            )

            if settings.ESCROW_ENFORCE_PAYMENT_AMOUNT and paid != project.escrow_amount:
                raise InvalidArgument(
                    f"Payment amount {paid} does not match the escrow amount {project.escrow_amount}."
                )

            project = EscrowService._advance(
                project,
                "pending_payment",
                "payment_submitted",
                payment_proof_url=proof_url,
                payment_method=method or "",
                submitted_payment_amount=paid,
                payment_submitted_at=timezone.now(),
            )

            record_transaction_safely(
                project,
                "payment_submitted",
                performed_by=actor,
                amount=paid,
                payment_method=method,
                metadata={"payment_proof_url": proof_url},
            )

            for admin in EscrowService._admins():
                notify_on_commit(
                    admin,
                    "PAYMENT_SUBMITTED",
                    "Payment proof awaiting verification",
                    message=f"'{project.title}': {paid} submitted by {actor.username}.",
                    data={"project_id": project.id},
                )

        return project

    @staticmethod
    def verify_escrow(project_id, actor, notes=None) -> Project:
        """
        Admin confirms the funds; the escrow is now held and both parties
        receive each other's contact details.
        """
        if not is_platform_admin(actor):
            raise Forbidden("Admin access required.")

        with transaction.atomic():
            project = EscrowService._lock_project(project_id)
            EscrowService._require_status(
                project, "payment_submitted", "Payment has not been submitted yet."
            )

            now = timezone.now()
            project = EscrowService._advance(
                project,
                "payment_submitted",
                "verified_held",
                escrow_verified_at=now,
                escrow_verified_by=actor,
                contact_shared_at=now,
            )

            record_transaction_safely(
                project,
                "payment_verified",
                performed_by=actor,
                amount=project.escrow_amount,
                notes=notes,
            )

            client, freelancer = project.client, project.freelancer
            notify_on_commit(
                client,
                "ESCROW_VERIFIED",
                "Payment verified - work can start",
                message=f"Your freelancer can be reached at {freelancer.email}.",
                data={"project_id": project.id, "contact_email": freelancer.email},
            )
            notify_on_commit(
                freelancer,
                "ESCROW_VERIFIED",
                "Escrow funded - you can start working",
                message=f"Your client can be reached at {client.email}.",
                data={"project_id": project.id, "contact_email": client.email},
            )

        return project

    @staticmethod
    def request_release(project_id, actor) -> Project:
        """
        Client signs off the work and asks for the funds to be released.
        Requires an approved deliverable unless the gate is disabled.
        """
        from apps.deliverables.models import Deliverable

        with transaction.atomic():
            project = EscrowService._lock_project(project_id)

            if not is_project_client(actor, project):
                raise Forbidden("Only the project client can request release.")

            EscrowService._require_status(
                project, "verified_held", "Escrow must be verified before release."
            )

            if settings.ESCROW_REQUIRE_APPROVED_DELIVERABLE and not Deliverable.objects.filter(
                project=project, status="approved"
            ).exists():
                raise InvalidState("At least one approved deliverable is required before release.")

            project = EscrowService._advance(
                project,
                "verified_held",
                "pending_release",
                escrow_release_requested_at=timezone.now(),
            )

            record_transaction_safely(
                project,
                "release_requested",
                performed_by=actor,
                amount=project.freelancer_payout_amount,
            )

            for admin in EscrowService._admins():
                notify_on_commit(
                    admin,
                    "RELEASE_REQUESTED",
                    "Escrow release requested",
                    message=f"'{project.title}' is ready for payout.",
                    data={"project_id": project.id},
                )

        return project

    @staticmethod
    def release(project_id, actor, transaction_id=None, method=None, notes=None) -> Project:
        """
        Admin pays the freelancer out; the project is completed.
        """
        if not is_platform_admin(actor):
            raise Forbidden("Admin access required.")

        with transaction.atomic():
            project = EscrowService._lock_project(project_id)
            EscrowService._require_status(
                project, "pending_release", "Escrow release has not been requested."
            )

            project = EscrowService._advance(
                project,
                "pending_release",
                "released",
                escrow_released_at=timezone.now(),
                escrow_released_by=actor,
                payment_status="paid",
                status="completed",
            )

            record_transaction_safely(
                project,
                "payment_released",
                performed_by=actor,
                amount=project.freelancer_payout_amount,
                transaction_id=transaction_id,
                payment_method=method,
                notes=notes or "Payment released to freelancer",
                metadata={
                    "escrow_amount": str(project.escrow_amount),
                    "platform_fee_amount": str(project.platform_fee_amount),
                },
            )

            notify_on_commit(
                project.freelancer,
                "ESCROW_RELEASED",
                "Payment released",
                message=f"{project.freelancer_payout_amount} has been released for '{project.title}'.",
                data={"project_id": project.id},
            )
            notify_on_commit(
                project.client,
                "ESCROW_RELEASED",
                "Project completed",
                message=f"Escrow for '{project.title}' has been released to the freelancer.",
                data={"project_id": project.id},
            )

        return project
