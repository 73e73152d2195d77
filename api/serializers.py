from django.conf import settings
from rest_framework import serializers

from .models import SUPPORTED_LANGUAGES, Job, Payment
from .utils import is_allowed_video

SUBTITLE_FORMATS = ("srt", "vtt", "json")


class UploadCreateSerializer(serializers.Serializer):
    """Multipart upload form; field names match what the web client sends."""
    video = serializers.FileField()
    sourceLanguage = serializers.ChoiceField(choices=SUPPORTED_LANGUAGES, default="en")
    targetLanguage = serializers.ChoiceField(choices=SUPPORTED_LANGUAGES, default="hi")
    duration = serializers.FloatField(required=False, allow_null=True, min_value=0)  # minutes
    videoType = serializers.ChoiceField(choices=Job.VideoType.choices, default=Job.VideoType.MOVIE)
    voiceMode = serializers.ChoiceField(choices=Job.VoiceMode.choices, default=Job.VoiceMode.NATURAL)

    def validate_video(self, value):
        if not is_allowed_video(value.name, getattr(value, "content_type", None)):
            raise serializers.ValidationError("Only video files are allowed (mp4, mov, avi, mkv, flv, wmv, webm)")
        if value.size > settings.MAX_UPLOAD_SIZE:
            raise serializers.ValidationError("File is too large")
        return value


class JobCreatedSerializer(serializers.ModelSerializer):
    jobId = serializers.UUIDField(source="id")
    originalFileName = serializers.CharField(source="original_file_name")
    sourceLanguage = serializers.CharField(source="source_language")
    targetLanguage = serializers.CharField(source="target_language")

    class Meta:
        model = Job
        fields = ["jobId", "originalFileName", "sourceLanguage", "targetLanguage", "status", "progress"]


class JobSerializer(serializers.ModelSerializer):
    """Status view for the owner; blob locations are never exposed."""
    originalFileName = serializers.CharField(source="original_file_name")
    sourceLanguage = serializers.CharField(source="source_language")
    targetLanguage = serializers.CharField(source="target_language")
    processingSteps = serializers.JSONField(source="processing_steps")
    degradedSteps = serializers.JSONField(source="degraded_steps")
    errorMessage = serializers.CharField(source="error_message")
    videoType = serializers.CharField(source="video_type")
    voiceMode = serializers.CharField(source="voice_mode")
    fileSize = serializers.IntegerField(source="file_size")
    backgroundMusic = serializers.SerializerMethodField()
    lipSync = serializers.SerializerMethodField()
    subtitleFormats = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source="created_at")
    updatedAt = serializers.DateTimeField(source="updated_at")

    class Meta:
        model = Job
        fields = [
            "id",
            "originalFileName",
            "sourceLanguage",
            "targetLanguage",
            "status",
            "progress",
            "processingSteps",
            "degradedSteps",
            "errorMessage",
            "duration",
            "fileSize",
            "videoType",
            "voiceMode",
            "emotions",
            "backgroundMusic",
            "lipSync",
            "subtitleFormats",
            "createdAt",
            "updatedAt",
        ]

    def get_backgroundMusic(self, job):
        return {"extracted": bool((job.background_music or {}).get("extracted"))}

    def get_lipSync(self, job):
        return {"method": (job.lip_sync_data or {}).get("method", "")}

    def get_subtitleFormats(self, job):
        return [fmt for fmt in SUBTITLE_FORMATS if (job.subtitles or {}).get(fmt)]


class JobListSerializer(serializers.ModelSerializer):
    originalFileName = serializers.CharField(source="original_file_name")
    sourceLanguage = serializers.CharField(source="source_language")
    targetLanguage = serializers.CharField(source="target_language")
    createdAt = serializers.DateTimeField(source="created_at")

    class Meta:
        model = Job
        fields = ["id", "originalFileName", "sourceLanguage", "targetLanguage", "status", "progress", "createdAt"]


class PersonalDetailsSerializer(serializers.Serializer):
    fullName = serializers.CharField(required=False, allow_blank=True, max_length=128)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)
    address = serializers.CharField(required=False, allow_blank=True, max_length=256)
    city = serializers.CharField(required=False, allow_blank=True, max_length=64)
    state = serializers.CharField(required=False, allow_blank=True, max_length=64)
    zipCode = serializers.CharField(required=False, allow_blank=True, max_length=16)
    country = serializers.CharField(required=False, allow_blank=True, max_length=64)


class PaymentProcessSerializer(serializers.Serializer):
    """Card number and CVV are accepted for authorization only and never echoed or stored."""
    planName = serializers.CharField(max_length=64)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    paymentMethod = serializers.ChoiceField(choices=Payment.Method.choices)
    personalDetails = PersonalDetailsSerializer()
    cardNumber = serializers.CharField(required=False, allow_blank=True, write_only=True)
    cardName = serializers.CharField(required=False, allow_blank=True, write_only=True)
    cvv = serializers.CharField(required=False, allow_blank=True, write_only=True)
    upiId = serializers.CharField(required=False, allow_blank=True)


class PaymentSerializer(serializers.ModelSerializer):
    transactionId = serializers.CharField(source="transaction_id")
    planName = serializers.CharField(source="plan_name")
    totalAmount = serializers.DecimalField(source="total_amount", max_digits=10, decimal_places=2)
    paymentMethod = serializers.CharField(source="payment_method")
    status = serializers.CharField(source="payment_status")
    paymentDetails = serializers.JSONField(source="payment_details")
    errorMessage = serializers.CharField(source="error_message")
    createdAt = serializers.DateTimeField(source="created_at")

    class Meta:
        model = Payment
        fields = [
            "transactionId",
            "planName",
            "amount",
            "tax",
            "totalAmount",
            "paymentMethod",
            "status",
            "paymentDetails",
            "errorMessage",
            "createdAt",
        ]
