from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.generics import ListAPIView
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.cores import storage
from apps.cores.exceptions import Forbidden
from apps.users.models import Project
from apps.users.permissions import IsClient, IsPlatformAdmin, IsProjectParty, is_project_client

from .constants import payment_proof_prefix
from .selectors import EscrowQueueSelector, LedgerSelector, PlatformRevenueSelector
from .serializers import (
    EscrowTransactionSerializer,
    PaymentProofUploadSerializer,
    PlatformFeeQuerySerializer,
    ProjectEscrowSerializer,
    ReleaseEscrowSerializer,
    SubmitPaymentSerializer,
    VerifyEscrowSerializer,
)
from .services import EscrowService
from .utils.file_validation import validate_payment_proof


class PaymentProofUploadView(APIView):
    permission_classes = [IsAuthenticated, IsClient]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request, project_id):
        project = get_object_or_404(Project, id=project_id)
        if not is_project_client(request.user, project):
            raise Forbidden("Unauthorized - not project client")

        serializer = PaymentProofUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        uploaded_file = serializer.validated_data["file"]
        validate_payment_proof(uploaded_file)

        path = storage.put(
            uploaded_file.read(),
            uploaded_file.content_type,
            prefix=payment_proof_prefix(project.id),
        )
        return Response(
            {
                "path": path,
                "url": storage.get_signed_url(path),
                "file_name": uploaded_file.name,
                "file_size": uploaded_file.size,
            },
            status=status.HTTP_201_CREATED,
        )


class SubmitPaymentView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    def post(self, request, project_id):
        serializer = SubmitPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        project = EscrowService.submit_payment_proof(
            project_id,
            request.user,
            proof_url=data["payment_proof_url"],
            amount=data["amount"],
            method=data.get("payment_method"),
        )
        return Response(ProjectEscrowSerializer(project).data)


class RequestReleaseView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    def post(self, request, project_id):
        project = EscrowService.request_release(project_id, request.user)
        return Response(ProjectEscrowSerializer(project).data)


class EscrowTransactionListView(ListAPIView):
    serializer_class = EscrowTransactionSerializer
    permission_classes = [IsAuthenticated, IsProjectParty]
    filterset_fields = ["transaction_type"]

    def get_queryset(self):
        project = get_object_or_404(Project, id=self.kwargs["project_id"])
        self.check_object_permissions(self.request, project)
        return LedgerSelector.for_project(project)


# -------- Admin --------

class AdminVerifyEscrowView(APIView):
    permission_classes = [IsAuthenticated, IsPlatformAdmin]

    def post(self, request, project_id):
        serializer = VerifyEscrowSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        project = EscrowService.verify_escrow(
            project_id,
            request.user,
            notes=serializer.validated_data.get("notes"),
        )
        return Response(ProjectEscrowSerializer(project).data)


class AdminReleaseEscrowView(APIView):
    permission_classes = [IsAuthenticated, IsPlatformAdmin]

    def post(self, request, project_id):
        serializer = ReleaseEscrowSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        project = EscrowService.release(
            project_id,
            request.user,
            transaction_id=data.get("transaction_id"),
            method=data.get("payment_method"),
            notes=data.get("notes"),
        )
        return Response(ProjectEscrowSerializer(project).data)


class AdminPendingVerificationListView(ListAPIView):
    serializer_class = ProjectEscrowSerializer
    permission_classes = [IsAuthenticated, IsPlatformAdmin]

    def get_queryset(self):
        return EscrowQueueSelector.pending_verifications()


class AdminPendingReleaseListView(ListAPIView):
    serializer_class = ProjectEscrowSerializer
    permission_classes = [IsAuthenticated, IsPlatformAdmin]

    def get_queryset(self):
        return EscrowQueueSelector.pending_releases()


class AdminActiveEscrowListView(ListAPIView):
    serializer_class = ProjectEscrowSerializer
    permission_classes = [IsAuthenticated, IsPlatformAdmin]
    filterset_fields = ["escrow_status"]

    def get_queryset(self):
        return EscrowQueueSelector.active_escrows()


class AdminPlatformFeesView(APIView):
    permission_classes = [IsAuthenticated, IsPlatformAdmin]

    def get(self, request):
        serializer = PlatformFeeQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)

        data = PlatformRevenueSelector.total_platform_fees(
            start=serializer.validated_data.get("start"),
            end=serializer.validated_data.get("end"),
        )
        return Response(data)
