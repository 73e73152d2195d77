import logging

from botocore.exceptions import BotoCoreError, ClientError
from django.http import FileResponse
from rest_framework import status, views
from rest_framework.response import Response

from . import orchestrator, payments
from .exceptions import NotFoundError
from .models import Job, Payment
from .s3 import create_presigned_get
from .serializers import (
    SUBTITLE_FORMATS,
    JobCreatedSerializer,
    JobListSerializer,
    JobSerializer,
    PaymentProcessSerializer,
    PaymentSerializer,
    UploadCreateSerializer,
)
from .tasks import process_dubbing_job
from .utils import media_path

logger = logging.getLogger(__name__)

SUBTITLE_CONTENT_TYPES = {
    "srt": "application/x-subrip",
    "vtt": "text/vtt",
    "json": "application/json",
}


class UploadAndCreateJobView(views.APIView):
    """
    Accepts a video upload, stores it under MEDIA_ROOT, creates a Job, and
    enqueues the dubbing task. Returns as soon as the job exists.
    """

    def post(self, request):
        ser = UploadCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        job = orchestrator.submit(
            request.user,
            data["video"],
            source_language=data["sourceLanguage"],
            target_language=data["targetLanguage"],
            duration=data.get("duration"),
            video_type=data["videoType"],
            voice_mode=data["voiceMode"],
        )
        process_dubbing_job.delay(str(job.id))  # queue background processing
        return Response(
            {"message": "Video uploaded successfully", **JobCreatedSerializer(job).data},
            status=status.HTTP_201_CREATED,
        )


class JobListView(views.APIView):
    def get(self, request):
        jobs = orchestrator.list_jobs(request.user)
        return Response(JobListSerializer(jobs, many=True).data)


class JobDetailView(views.APIView):
    def get(self, request, job_id):
        job = orchestrator.get_job(job_id, request.user)
        data = JobSerializer(job).data

        # Mirrored artifacts get time-limited links.
        cloud = job.cloud_storage or {}
        try:
            if cloud.get("processed_key"):
                data["downloadUrl"] = create_presigned_get(cloud["processed_key"])
            if cloud.get("thumbnail_key"):
                data["thumbnailUrl"] = create_presigned_get(cloud["thumbnail_key"])
        except (BotoCoreError, ClientError) as e:
            logger.warning("Could not presign links for job %s: %s", job.id, e)
            data.pop("downloadUrl", None)
        return Response(data)

    def delete(self, request, job_id):
        job = orchestrator.get_job(job_id, request.user)
        orchestrator.delete_job(job)
        return Response({"message": "Video deleted successfully"})


class JobDownloadView(views.APIView):
    def get(self, request, job_id):
        job = orchestrator.get_job(job_id, request.user)
        if job.status != Job.Status.COMPLETED:
            return Response(
                {"detail": "Video processing not completed yet. Please wait."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if not job.processed_file_path:
            raise NotFoundError("Processed video file path not found")

        processed = media_path(job.processed_file_path)
        if processed.exists():
            return FileResponse(open(processed, "rb"), as_attachment=True, filename=f"dubbed_{job.original_file_name}")

        logger.warning("Processed file missing for job %s: %s", job.id, processed)
        original = media_path(job.original_file_path)
        if original.exists():
            return FileResponse(open(original, "rb"), as_attachment=True, filename=f"original_{job.original_file_name}")
        raise NotFoundError("Video file not found on server")


class SubtitleDownloadView(views.APIView):
    def get(self, request, job_id, fmt):
        job = orchestrator.get_job(job_id, request.user)
        if fmt not in SUBTITLE_FORMATS:
            return Response(
                {"detail": f"Unknown subtitle format: {fmt}. Use one of {', '.join(SUBTITLE_FORMATS)}"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if job.status != Job.Status.COMPLETED:
            return Response(
                {"detail": "Video processing not completed yet. Please wait."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        rel = (job.subtitles or {}).get(fmt)
        if not rel or not media_path(rel).exists():
            raise NotFoundError("Subtitles not found")

        stem = job.original_file_name.rsplit(".", 1)[0]
        return FileResponse(
            open(media_path(rel), "rb"),
            as_attachment=True,
            filename=f"{stem}_{job.target_language}.{fmt}",
            content_type=SUBTITLE_CONTENT_TYPES[fmt],
        )


class PaymentProcessView(views.APIView):
    def post(self, request):
        ser = PaymentProcessSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        payment = payments.process_payment(
            request.user,
            plan_name=data["planName"],
            amount=data["amount"],
            payment_method=data["paymentMethod"],
            personal_details=dict(data["personalDetails"]),
            card_number=data.get("cardNumber", ""),
            card_name=data.get("cardName", ""),
            upi_id=data.get("upiId", ""),
        )
        if payment.payment_status != Payment.Status.COMPLETED:
            return Response(
                {"detail": payment.error_message, "transactionId": payment.transaction_id},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response(
            {"message": "Payment successful", "payment": PaymentSerializer(payment).data},
            status=status.HTTP_201_CREATED,
        )


class PaymentHistoryView(views.APIView):
    def get(self, request):
        qs = Payment.objects.filter(owner=request.user).order_by("-created_at")
        return Response(PaymentSerializer(qs, many=True).data)


class PaymentDetailView(views.APIView):
    def get(self, request, transaction_id):
        payment = Payment.objects.filter(owner=request.user, transaction_id=transaction_id).first()
        if payment is None:
            raise NotFoundError("Payment not found")
        return Response(PaymentSerializer(payment).data)
