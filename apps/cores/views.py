import mimetypes

from django.core.files.storage import default_storage
from django.http import FileResponse
from rest_framework import permissions
from rest_framework.views import APIView

from apps.cores import storage
from apps.cores.exceptions import NotFound


class SignedFileView(APIView):
    '''
    Serve a stored blob for a signed, unexpired token.
    The token itself is the credential.
    '''
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def get(self, request, token):
        path = storage.resolve_signed_url(token)
        if not path or not default_storage.exists(path):
            raise NotFound("File link is invalid or has expired.")

        content_type, _ = mimetypes.guess_type(path)
        return FileResponse(
            default_storage.open(path, "rb"),
            content_type=content_type or "application/octet-stream",
        )
