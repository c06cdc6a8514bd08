import os
from apps.cores.exceptions import InvalidArgument
from apps.escrow.constants import (
    MAX_PROOF_SIZE_BYTES,
    ALLOWED_PROOF_EXTENSIONS,
    ALLOWED_PROOF_MIME_TYPES,
)


def validate_payment_proof(file):
    if not file:
        raise InvalidArgument("File is required.")

    if file.size > MAX_PROOF_SIZE_BYTES:
        raise InvalidArgument(
            f"File size exceeds {MAX_PROOF_SIZE_BYTES // (1024 * 1024)}MB limit."
        )

    ext = os.path.splitext(file.name)[1].lower().replace(".", "")
    if ext not in ALLOWED_PROOF_EXTENSIONS:
        raise InvalidArgument("Invalid file type. Only images and PDFs are allowed.")

    # MIME check (secondary)
    if file.content_type not in ALLOWED_PROOF_MIME_TYPES:
        raise InvalidArgument("Invalid file type. Only images and PDFs are allowed.")

    return True
