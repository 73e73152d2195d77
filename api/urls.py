from django.urls import path
from rest_framework.authtoken.views import obtain_auth_token

from .views import (
    JobDetailView,
    JobDownloadView,
    JobListView,
    PaymentDetailView,
    PaymentHistoryView,
    PaymentProcessView,
    SubtitleDownloadView,
    UploadAndCreateJobView,
)

urlpatterns = [
    path("auth/token/", obtain_auth_token, name="auth_token"),
    path("videos/", JobListView.as_view(), name="job_list"),
    path("videos/upload/", UploadAndCreateJobView.as_view(), name="upload_create_job"),
    path("videos/<uuid:job_id>/", JobDetailView.as_view(), name="job_detail"),
    path("videos/<uuid:job_id>/download/", JobDownloadView.as_view(), name="job_download"),
    path("videos/<uuid:job_id>/subtitles/<str:fmt>/", SubtitleDownloadView.as_view(), name="job_subtitles"),
    path("payments/process/", PaymentProcessView.as_view(), name="payment_process"),
    path("payments/history/", PaymentHistoryView.as_view(), name="payment_history"),
    path("payments/<str:transaction_id>/", PaymentDetailView.as_view(), name="payment_detail"),
]
