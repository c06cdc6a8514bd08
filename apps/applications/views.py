from django.conf import settings
from django.shortcuts import get_object_or_404
from rest_framework import generics, permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.cores.exceptions import Forbidden
from apps.escrow.serializers import ProjectEscrowSerializer
from apps.users.models import Project
from apps.users.permissions import IsFreelancer, is_platform_admin, is_project_client

from .models import Proposal
from .serializers import (
    AcceptProposalSerializer,
    CounterOfferSerializer,
    MyProposalSerializer,
    ProposalCreateSerializer,
    ProposalSerializer,
)
from .services import negotiation


def _proposal_context(request):
    return {'request': request, 'max_rounds': settings.MAX_NEGOTIATION_ROUNDS}


def _with_history(queryset):
    return queryset.select_related('freelancer').prefetch_related(
        'negotiation_history', 'negotiation_history__actor'
    )


class ProjectProposalsView(generics.ListCreateAPIView):
    '''
    GET: proposals received on a project (client or admin).
    POST: a freelancer applies to the project with a bid and cover letter.
    '''
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ProposalSerializer
    filterset_fields = ['status']

    def get_serializer_context(self):
        return _proposal_context(self.request)

    def get_queryset(self):
        project = get_object_or_404(Project, id=self.kwargs['project_id'])
        if not (is_project_client(self.request.user, project) or is_platform_admin(self.request.user)):
            raise Forbidden("Only the project client can view its proposals.")
        return _with_history(Proposal.objects.filter(project=project)).order_by('-created_at')

    def create(self, request, *args, **kwargs):
        serializer = ProposalCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        proposal = negotiation.submit_proposal(
            self.kwargs['project_id'],
            request.user.id,
            budget=data['proposed_budget'],
            cover_letter=data['cover_letter'],
            estimated_duration=data.get('estimated_duration') or None,
            actor=request.user,
        )
        return Response(
            ProposalSerializer(proposal, context=_proposal_context(request)).data,
            status=status.HTTP_201_CREATED,
        )


class MyProposals(generics.ListAPIView):
    serializer_class = MyProposalSerializer
    permission_classes = [permissions.IsAuthenticated, IsFreelancer]
    filterset_fields = ['status']

    def get_serializer_context(self):
        return _proposal_context(self.request)

    def get_queryset(self):
        return (
            _with_history(Proposal.objects.filter(freelancer=self.request.user))
            .select_related('project', 'project__client')
            .order_by('-created_at')
        )


class CounterOfferView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, proposal_id):
        serializer = CounterOfferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        proposal = negotiation.counter_offer(
            proposal_id,
            request.user,
            new_budget=data.get('proposed_budget'),
            new_duration=data.get('estimated_duration'),
            explanation=data['message'],
        )
        return Response(ProposalSerializer(proposal, context=_proposal_context(request)).data)


class AcceptProposalView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, proposal_id):
        serializer = AcceptProposalSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        project_id = serializer.validated_data.get('project_id')
        if project_id is None:
            project_id = get_object_or_404(Proposal, id=proposal_id).project_id

        project = negotiation.accept_proposal(proposal_id, project_id, request.user)
        return Response(ProjectEscrowSerializer(project).data)


class DeclineProposalView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, proposal_id):
        proposal = negotiation.decline_proposal(proposal_id, request.user)
        return Response(ProposalSerializer(proposal, context=_proposal_context(request)).data)


class WithdrawProposalView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, proposal_id):
        proposal = negotiation.withdraw_proposal(proposal_id, request.user)
        return Response(ProposalSerializer(proposal, context=_proposal_context(request)).data)
