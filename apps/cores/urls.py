from django.urls import path
from .views import SignedFileView

urlpatterns = [
    path('files/<str:token>/', SignedFileView.as_view(), name='signed-file'),
]
