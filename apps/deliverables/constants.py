from django.conf import settings

# -----------------------------
# PROJECT FILE UPLOADS
# -----------------------------

MAX_PROJECT_FILE_BYTES = getattr(settings, "PROJECT_FILE_MAX_BYTES", 50 * 1024 * 1024)

# Design assets, documents and archives
ALLOWED_PROJECT_FILE_EXTENSIONS = {
    "pdf",
    "zip",
    "png",
    "jpg",
    "jpeg",
    "gif",
    "webp",
    "svg",
    "doc",
    "docx",
    "txt",
    "md",
    "csv",
    "mp4",
}

# Working project states that accept new files and deliverables
WORKING_PROJECT_STATUSES = ("in_progress", "in_review")


def project_file_prefix(project_id):
    """
    Non-user-controlled storage prefix for a project's files.
    Deliverables may only reference paths below it.
    """
    return f"project-files/{project_id}"
