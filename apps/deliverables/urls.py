from django.urls import path
from .views import (
    DeliverableDetailView,
    DeliverableReviewView,
    DeliverableStartReviewView,
    DeliverableSubmitRevisionView,
    ProjectDeliverablesView,
    ProjectFileUploadView,
)

urlpatterns = [
    path('projects/<int:project_id>/deliverables/', ProjectDeliverablesView.as_view(), name='project-deliverables'),
    path('projects/<int:project_id>/files/', ProjectFileUploadView.as_view(), name='project-files'),
    path('deliverables/<int:deliverable_id>/', DeliverableDetailView.as_view(), name='deliverable-detail'),
    path('deliverables/<int:deliverable_id>/start-review/', DeliverableStartReviewView.as_view(), name='deliverable-start-review'),
    path('deliverables/<int:deliverable_id>/review/', DeliverableReviewView.as_view(), name='deliverable-review'),
    path('deliverables/<int:deliverable_id>/submit-revision/', DeliverableSubmitRevisionView.as_view(), name='deliverable-submit-revision'),
]
