from django.urls import path
from .views import (
    AdminActiveEscrowListView,
    AdminPendingReleaseListView,
    AdminPendingVerificationListView,
    AdminPlatformFeesView,
    AdminReleaseEscrowView,
    AdminVerifyEscrowView,
    EscrowTransactionListView,
    PaymentProofUploadView,
    RequestReleaseView,
    SubmitPaymentView,
)

urlpatterns = [
    # -------- Client --------
    path("escrow/<int:project_id>/upload-proof/", PaymentProofUploadView.as_view(), name="escrow-upload-proof"),
    path("escrow/<int:project_id>/submit-payment/", SubmitPaymentView.as_view(), name="escrow-submit-payment"),
    path("escrow/<int:project_id>/request-release/", RequestReleaseView.as_view(), name="escrow-request-release"),

    # -------- Parties + Admin --------
    path("escrow/<int:project_id>/transactions/", EscrowTransactionListView.as_view(), name="escrow-transactions"),

    # -------- Admin --------
    path("admin/escrow/<int:project_id>/verify/", AdminVerifyEscrowView.as_view(), name="admin-escrow-verify"),
    path("admin/escrow/<int:project_id>/release/", AdminReleaseEscrowView.as_view(), name="admin-escrow-release"),
    path("admin/escrow/pending-verifications/", AdminPendingVerificationListView.as_view(), name="admin-escrow-pending-verifications"),
    path("admin/escrow/pending-releases/", AdminPendingReleaseListView.as_view(), name="admin-escrow-pending-releases"),
    path("admin/escrow/active/", AdminActiveEscrowListView.as_view(), name="admin-escrow-active"),
    path("admin/escrow/platform-fees/", AdminPlatformFeesView.as_view(), name="admin-platform-fees"),
]
