"""
Proposal negotiation: submit, counter-offer (max two rounds), accept,
decline and withdraw.

Accepting a proposal is the hand-off into escrow: it assigns the freelancer,
freezes the escrow figures onto the project and writes the first ledger row,
all inside one transaction holding the project row lock.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.applications.models import NegotiationEntry, Proposal
from apps.cores.exceptions import (
    Conflict,
    Forbidden,
    InvalidArgument,
    InvalidState,
    LimitExceeded,
    NotFound,
)
from apps.cores.money import to_amount
from apps.escrow.ledger import record_transaction
from apps.notifications.services.create_notifications import notify_on_commit
from apps.users.models import Project
from apps.users.permissions import is_platform_admin, is_project_client

logger = logging.getLogger(__name__)

FEE_QUANTUM = Decimal("0.0001")


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


def _lock_proposal(proposal_id, project=None):
    """
    Lock order is always project row, then proposal row. Joined user rows
    are read but never locked.
    """
    if project is None:
        project_id = Proposal.objects.filter(pk=proposal_id).values_list("project_id", flat=True).first()
        if project_id is None:
            raise NotFound("Proposal not found.")
        project = _lock_project(project_id)

    proposal = (
        Proposal.objects
        .select_for_update(of=("self",))
        .select_related("freelancer")
        .filter(pk=proposal_id)
        .first()
    )
    if proposal is None:
        raise NotFound("Proposal not found.")
    if proposal.project_id != project.id:
        raise NotFound("Proposal not found on this project.")

    proposal.project = project
    return proposal


def compute_escrow_figures(escrow_amount, fee_percentage):
    """
    Return (platform_fee_amount, freelancer_payout_amount). The payout is
    derived by subtraction so the two always sum to the escrow amount.
    """
    fee = (escrow_amount * fee_percentage / Decimal("100")).quantize(
        FEE_QUANTUM, rounding=ROUND_HALF_UP
    )
    return fee, escrow_amount - fee


def submit_proposal(project_id, freelancer_id, budget, cover_letter, estimated_duration=None, *, actor):
    if actor is None or not actor.is_authenticated or actor.id != freelancer_id:
        raise Forbidden("You can only submit proposals as yourself.")
    if actor.role != "freelancer":
        raise Forbidden("Only freelancers can submit proposals.")

    amount = to_amount(budget, "budget")
    if not cover_letter or not cover_letter.strip():
        raise InvalidArgument("Cover letter cannot be empty.")

    with transaction.atomic():
        project = _lock_project(project_id)

        if project.client_id == actor.id:
            raise Forbidden("You cannot apply to your own project.")

        if not project.is_open:
            raise Conflict("This project is not open for proposals.")

        if Proposal.objects.filter(project=project, freelancer=actor).exists():
            raise Conflict("You have already applied to this project.")

        proposal = Proposal.objects.create(
            project=project,
            freelancer=actor,
            proposed_budget=amount,
            estimated_duration=estimated_duration or None,
            cover_letter=cover_letter.strip(),
        )

        notify_on_commit(
            project.client,
            "PROPOSAL_SUBMITTED",
            "New proposal received",
            message=f"{actor.username} proposed {amount} for '{project.title}'.",
            data={"project_id": project.id, "proposal_id": proposal.id},
        )

    logger.info("Proposal #%s submitted on project #%s by user #%s", proposal.id, project.id, actor.id)
    return proposal


def counter_offer(proposal_id, actor, new_budget=None, new_duration=None, explanation=""):
    """
    Append one negotiation round. Either party may counter; the round cap
    is MAX_NEGOTIATION_ROUNDS.
    """
    max_rounds = settings.MAX_NEGOTIATION_ROUNDS

    with transaction.atomic():
        proposal = _lock_proposal(proposal_id)
        project = proposal.project

        if is_project_client(actor, project):
            actor_role, counterparty = "client", proposal.freelancer
        elif actor is not None and actor.is_authenticated and proposal.freelancer_id == actor.id:
            actor_role, counterparty = "freelancer", project.client
        else:
            raise Forbidden("Only the project client or the proposing freelancer can negotiate.")

        if not proposal.is_open:
            raise InvalidState(f"Proposal is already {proposal.status}.")

        if proposal.negotiation_count >= max_rounds:
            logger.warning("Counter-offer limit hit on proposal #%s", proposal.id)
            raise LimitExceeded(
                f"This proposal has reached the maximum number of counter-offers ({max_rounds} rounds)."
            )

        if not explanation or not explanation.strip():
            raise InvalidArgument("Please provide a message explaining your counter-offer.")

        budget = proposal.proposed_budget if new_budget is None else to_amount(new_budget, "budget")
        duration = proposal.estimated_duration if new_duration in (None, "") else new_duration

        if budget == proposal.proposed_budget and duration == proposal.estimated_duration:
            raise InvalidArgument("Please change the budget or duration to submit a counter-offer.")

        round_number = proposal.negotiation_count + 1
        try:
            with transaction.atomic():
                NegotiationEntry.objects.create(
                    proposal=proposal,
                    round_number=round_number,
                    actor=actor,
                    actor_role=actor_role,
                    old_budget=proposal.proposed_budget,
                    new_budget=budget,
                    old_duration=proposal.estimated_duration,
                    new_duration=duration,
                    message=explanation.strip(),
                )
        except IntegrityError:
            raise Conflict("Another counter-offer was recorded at the same time. Reload and retry.")

        if proposal.original_budget is None:
            proposal.original_budget = proposal.proposed_budget
        proposal.proposed_budget = budget
        proposal.estimated_duration = duration
        proposal.negotiation_count = round_number
        proposal.status = "final_offer" if round_number >= max_rounds else "negotiating"
        proposal.save(update_fields=[
            "original_budget",
            "proposed_budget",
            "estimated_duration",
            "negotiation_count",
            "status",
            "updated_at",
        ])

        notify_on_commit(
            counterparty,
            "PROPOSAL_COUNTERED",
            "Counter-offer received",
            message=explanation.strip(),
            data={"project_id": project.id, "proposal_id": proposal.id, "round": round_number},
        )

    logger.info(
        "Proposal #%s countered by %s (round %s/%s): budget %s",
        proposal.id, actor_role, round_number, max_rounds, budget,
    )
    return proposal


def accept_proposal(proposal_id, project_id, actor):
    """
    Accept one proposal and initialise escrow on its project.

    Runs as a single unit: accept, reject the open siblings, freeze the
    escrow figures, assign the freelancer and write the proposal_accepted
    ledger row. Any failure rolls back all of it.
    """
    with transaction.atomic():
        project = _lock_project(project_id)
        proposal = _lock_proposal(proposal_id, project=project)

        if not is_project_client(actor, project):
            raise Forbidden("Only the project client can accept proposals.")

        if project.freelancer_id is not None or project.escrow_status is not None:
            raise Conflict("A proposal has already been accepted for this project.")

        if not project.is_open:
            raise InvalidState(f"Project is {project.status}; proposals can no longer be accepted.")

        if not proposal.is_open:
            raise InvalidState(f"Proposal is already {proposal.status}.")

        fee_percentage = Decimal(str(settings.PLATFORM_FEE_PERCENTAGE))
        escrow_amount = proposal.proposed_budget
        platform_fee_amount, freelancer_payout_amount = compute_escrow_figures(
            escrow_amount, fee_percentage
        )
        now = timezone.now()

        proposal.status = "accepted"
        proposal.save(update_fields=["status", "updated_at"])

        siblings = Proposal.objects.filter(
            project=project,
            status__in=Proposal.OPEN_STATUSES,
        ).exclude(pk=proposal.pk).select_related("freelancer")
        rejected = list(siblings)
        siblings.update(status="rejected", updated_at=now)

        project.freelancer = proposal.freelancer
        project.status = "in_progress"
        project.escrow_status = "pending_payment"
        project.escrow_amount = escrow_amount
        project.platform_fee_percentage = fee_percentage
        project.platform_fee_amount = platform_fee_amount
        project.freelancer_payout_amount = freelancer_payout_amount
        project.save(update_fields=[
            "freelancer",
            "status",
            "escrow_status",
            "escrow_amount",
            "platform_fee_percentage",
            "platform_fee_amount",
            "freelancer_payout_amount",
            "updated_at",
        ])

        record_transaction(
            project,
            "proposal_accepted",
            performed_by=actor,
            amount=escrow_amount,
            notes=f"Proposal accepted - Escrow amount set to {escrow_amount}",
            metadata={
                "proposal_id": proposal.id,
                "platform_fee_percentage": str(fee_percentage),
                "platform_fee_amount": str(platform_fee_amount),
                "freelancer_payout_amount": str(freelancer_payout_amount),
                "rejected_proposal_ids": [p.id for p in rejected],
            },
        )

        notify_on_commit(
            proposal.freelancer,
            "PROPOSAL_ACCEPTED",
            "Your proposal was accepted",
            message=f"You were hired for '{project.title}' at {escrow_amount}.",
            data={"project_id": project.id, "proposal_id": proposal.id},
        )
        for other in rejected:
            notify_on_commit(
                other.freelancer,
                "PROPOSAL_REJECTED",
                "Proposal not selected",
                message=f"Another proposal was accepted for '{project.title}'.",
                data={"project_id": project.id, "proposal_id": other.id},
            )

    logger.info(
        "Proposal #%s accepted on project #%s: escrow=%s fee=%s payout=%s, %d sibling(s) rejected",
        proposal.id, project.id, escrow_amount, platform_fee_amount,
        freelancer_payout_amount, len(rejected),
    )
    return project


def decline_proposal(proposal_id, actor):
    """
    Reject a proposal. Declining a proposal that is already terminal is a
    no-op success.
    """
    with transaction.atomic():
        proposal = _lock_proposal(proposal_id)
        project = proposal.project

        if not (is_project_client(actor, project) or is_platform_admin(actor)):
            raise Forbidden("Only the project client can decline proposals.")

        if not proposal.is_open:
            logger.info("Decline on proposal #%s ignored: already %s", proposal.id, proposal.status)
            return proposal

        proposal.status = "rejected"
        proposal.save(update_fields=["status", "updated_at"])

        notify_on_commit(
            proposal.freelancer,
            "PROPOSAL_REJECTED",
            "Proposal declined",
            message=f"Your proposal for '{project.title}' was declined.",
            data={"project_id": project.id, "proposal_id": proposal.id},
        )

    logger.info("Proposal #%s declined by user #%s", proposal.id, actor.id)
    return proposal


def withdraw_proposal(proposal_id, actor):
    with transaction.atomic():
        proposal = _lock_proposal(proposal_id)

        if actor is None or not actor.is_authenticated or proposal.freelancer_id != actor.id:
            raise Forbidden("Only the submitting freelancer can withdraw this proposal.")

        if not proposal.is_open:
            raise InvalidState(f"Proposal is already {proposal.status}.")

        proposal.status = "withdrawn"
        proposal.save(update_fields=["status", "updated_at"])

        notify_on_commit(
            proposal.project.client,
            "PROPOSAL_WITHDRAWN",
            "Proposal withdrawn",
            message=f"{actor.username} withdrew their proposal for '{proposal.project.title}'.",
            data={"project_id": proposal.project_id, "proposal_id": proposal.id},
        )

    logger.info("Proposal #%s withdrawn", proposal.id)
    return proposal
