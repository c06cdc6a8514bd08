from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.cores.exceptions import Forbidden
from apps.users.models import Project
from apps.users.permissions import IsFreelancer, is_platform_admin, is_project_client, is_project_freelancer

from . import services
from .serializers import (
    DeliverableReviewSerializer,
    DeliverableRevisionSubmitSerializer,
    DeliverableSerializer,
    DeliverableSubmitSerializer,
    ProjectFileUploadSerializer,
)


def _ensure_party(user, project):
    if not (
        is_project_client(user, project)
        or is_project_freelancer(user, project)
        or is_platform_admin(user)
    ):
        raise Forbidden("Not allowed")


class ProjectDeliverablesView(APIView):
    '''
    GET: every deliverable of a project with its revision history.
    POST: the assigned freelancer submits new work.
    '''
    permission_classes = [IsAuthenticated]

    def get(self, request, project_id):
        project = get_object_or_404(Project, id=project_id)
        _ensure_party(request.user, project)

        deliverables = services.project_deliverables(project)
        return Response(DeliverableSerializer(deliverables, many=True).data)

    def post(self, request, project_id):
        serializer = DeliverableSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        deliverable = services.submit_deliverable(
            project_id,
            request.user,
            title=data["title"],
            description=data.get("description", ""),
            file_id=data.get("file_id") or None,
        )
        return Response(DeliverableSerializer(deliverable).data, status=status.HTTP_201_CREATED)


class ProjectFileUploadView(APIView):
    '''
    Assigned freelancer uploads a file for a deliverable. The returned
    `path` is what `file_id` accepts on submit and on revision.
    '''
    permission_classes = [IsAuthenticated, IsFreelancer]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request, project_id):
        serializer = ProjectFileUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        uploaded = services.upload_project_file(project_id, request.user, serializer.validated_data["file"])
        return Response(uploaded, status=status.HTTP_201_CREATED)


class DeliverableDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, deliverable_id):
        deliverable = services.get_deliverable(deliverable_id)
        _ensure_party(request.user, deliverable.project)
        return Response(DeliverableSerializer(deliverable).data)

    def delete(self, request, deliverable_id):
        services.delete_deliverable(deliverable_id, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


class DeliverableStartReviewView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, deliverable_id):
        deliverable = services.start_review(deliverable_id, request.user)
        return Response(DeliverableSerializer(deliverable).data)


class DeliverableReviewView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, deliverable_id):
        serializer = DeliverableReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        deliverable = services.review_deliverable(
            deliverable_id,
            request.user,
            status=serializer.validated_data["status"],
            notes=serializer.validated_data.get("notes"),
        )
        return Response(DeliverableSerializer(deliverable).data)


class DeliverableSubmitRevisionView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, deliverable_id):
        serializer = DeliverableRevisionSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        deliverable = services.submit_revision(
            deliverable_id,
            request.user,
            file_id=serializer.validated_data.get("file_id") or None,
        )
        return Response(DeliverableSerializer(deliverable).data)
