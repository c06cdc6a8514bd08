import logging

from django.db import DatabaseError, transaction

from .models import EscrowTransaction

logger = logging.getLogger(__name__)


def record_transaction(project, transaction_type, performed_by=None, amount=None,
                       transaction_id="", payment_method="", notes="", metadata=None):
    """
    Append one ledger row. Any database failure propagates to the caller,
    so this is the form to use when the row is part of the unit of work.
    """
    entry = EscrowTransaction.objects.create(
        project=project,
        transaction_type=transaction_type,
        amount=amount,
        transaction_id=transaction_id or "",
        payment_method=payment_method or "",
        notes=notes or "",
        performed_by=performed_by,
        metadata=metadata or {},
    )
    logger.info(
        "Ledger: %s on project #%s (amount=%s, by=%s)",
        transaction_type, project.pk, amount, getattr(performed_by, "pk", None),
    )
    return entry


def record_transaction_safely(project, transaction_type, **kwargs):
    """
    Append a ledger row inside a savepoint. A failure is logged and the
    surrounding state transition is kept.
    """
    try:
        with transaction.atomic():
            return record_transaction(project, transaction_type, **kwargs)
    except DatabaseError:
        logger.exception(
            "Failed to write %s ledger row for project #%s", transaction_type, project.pk
        )
        return None
