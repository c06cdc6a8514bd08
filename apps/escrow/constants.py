from django.conf import settings

# -----------------------------
# PAYMENT PROOF UPLOADS
# -----------------------------

MAX_PROOF_SIZE_BYTES = getattr(settings, "PAYMENT_PROOF_MAX_BYTES", 10 * 1024 * 1024)

# Screenshots / receipts only
ALLOWED_PROOF_MIME_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
}

ALLOWED_PROOF_EXTENSIONS = {
    "jpg",
    "jpeg",
    "png",
    "gif",
    "webp",
    "pdf",
}


def payment_proof_prefix(project_id):
    """
    Non-user-controlled storage prefix for a project's payment proofs
    """
    return f"payment-proofs/{project_id}"
