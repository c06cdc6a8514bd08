from django.urls import path
from .views import (
    AcceptProposalView,
    CounterOfferView,
    DeclineProposalView,
    MyProposals,
    ProjectProposalsView,
    WithdrawProposalView,
)

urlpatterns = [
    path('projects/<int:project_id>/proposals/', ProjectProposalsView.as_view(), name='project-proposals'),
    path('my-proposals/', MyProposals.as_view(), name='my-proposals'),
    path('proposals/<int:proposal_id>/counter-offer/', CounterOfferView.as_view(), name='proposal-counter-offer'),
    path('proposals/<int:proposal_id>/accept/', AcceptProposalView.as_view(), name='proposal-accept'),
    path('proposals/<int:proposal_id>/decline/', DeclineProposalView.as_view(), name='proposal-decline'),
    path('proposals/<int:proposal_id>/withdraw/', WithdrawProposalView.as_view(), name='proposal-withdraw'),
]
