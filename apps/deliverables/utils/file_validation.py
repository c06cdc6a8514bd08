import os
from apps.cores.exceptions import InvalidArgument
from apps.deliverables.constants import (
    ALLOWED_PROJECT_FILE_EXTENSIONS,
    MAX_PROJECT_FILE_BYTES,
)


def validate_project_file(file):
    if not file:
        raise InvalidArgument("File is required.")

    if file.size > MAX_PROJECT_FILE_BYTES:
        raise InvalidArgument(
            f"File size exceeds {MAX_PROJECT_FILE_BYTES // (1024 * 1024)}MB limit."
        )

    ext = os.path.splitext(file.name)[1].lower().replace(".", "")
    if ext not in ALLOWED_PROJECT_FILE_EXTENSIONS:
        raise InvalidArgument(f"Files of type '.{ext}' cannot be attached to a deliverable.")

    return True
