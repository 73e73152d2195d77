import uuid
from django.conf import settings
from django.db import models

# Ordered pipeline steps and the progress checkpoint written when each one finishes.
STEPS = (
    ("upload", 10),
    ("audioExtraction", 20),
    ("emotionDetection", 30),
    ("translation", 40),
    ("voiceSynthesis", 60),
    ("backgroundMusicExtraction", 70),
    ("lipSync", 80),
    ("subtitleGeneration", 85),
    ("rendering", 90),
)
STEP_NAMES = tuple(name for name, _ in STEPS)
STEP_PROGRESS = dict(STEPS)

SUPPORTED_LANGUAGES = ("en", "hi", "es", "fr", "de", "pt", "zh", "ja", "ko", "ar", "bn", "ta", "te")


def default_processing_steps():
    return {name: False for name in STEP_NAMES}


class Job(models.Model):
    class Status(models.TextChoices):
        UPLOADING = "uploading"
        PROCESSING = "processing"
        COMPLETED = "completed"
        FAILED = "failed"

    class VideoType(models.TextChoices):
        MOVIE = "movie"
        SHORT = "short"

    class VoiceMode(models.TextChoices):
        NATURAL = "natural"
        EXPRESSIVE = "expressive"
        CALM = "calm"
        ENERGETIC = "energetic"

    TERMINAL = (Status.COMPLETED, Status.FAILED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="dubbing_jobs")

    original_file_name = models.CharField(max_length=255)
    original_file_path = models.CharField(max_length=512)               # relative to MEDIA_ROOT
    processed_file_path = models.CharField(max_length=512, blank=True, default="")
    thumbnail_path = models.CharField(max_length=512, blank=True, default="")

    source_language = models.CharField(max_length=8, default="en")
    target_language = models.CharField(max_length=8, default="hi")

    status = models.CharField(max_length=16, choices=Status.choices, default=Status.UPLOADING)
    progress = models.PositiveSmallIntegerField(default=0)  # 0..100
    processing_steps = models.JSONField(default=default_processing_steps)
    degraded_steps = models.JSONField(default=list, blank=True)   # steps that fell back to a degraded output
    error_message = models.TextField(blank=True, default="")

    # request metadata, fixed at creation
    duration = models.PositiveIntegerField(null=True, blank=True)    # seconds
    file_size = models.BigIntegerField(null=True, blank=True)        # bytes
    video_type = models.CharField(max_length=8, choices=VideoType.choices, default=VideoType.MOVIE)
    voice_mode = models.CharField(max_length=16, choices=VoiceMode.choices, default=VoiceMode.NATURAL)

    emotions = models.JSONField(default=list, blank=True)         # [{timestamp, emotion, confidence, text}]
    subtitles = models.JSONField(default=dict, blank=True)        # {srt, vtt, json}
    background_music = models.JSONField(default=dict, blank=True)  # {extracted, path}
    lip_sync_data = models.JSONField(default=dict, blank=True)     # {method, data_path}
    cloud_storage = models.JSONField(default=dict, blank=True)     # {provider, processed_key, thumbnail_key}

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["owner", "-created_at"], name="job_owner_created_idx"),
            models.Index(fields=["status"], name="job_status_idx"),
        ]

    def __str__(self):
        return f"Job {self.id} ({self.status}, {self.progress}%)"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL


class Payment(models.Model):
    class Method(models.TextChoices):
        CARD = "card"
        UPI = "upi"

    class Status(models.TextChoices):
        PENDING = "pending"
        COMPLETED = "completed"
        FAILED = "failed"
        REFUNDED = "refunded"

    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="payments")
    plan_name = models.CharField(max_length=64)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    tax = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2)
    payment_method = models.CharField(max_length=8, choices=Method.choices)
    payment_status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    transaction_id = models.CharField(max_length=64, unique=True)
    personal_details = models.JSONField(default=dict, blank=True)
    # card: {card_last_four, card_brand}; upi: {upi_id}. Never the full number or CVV.
    payment_details = models.JSONField(default=dict, blank=True)
    error_message = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["owner", "-created_at"], name="payment_owner_created_idx"),
            models.Index(fields=["payment_status"], name="payment_status_idx"),
        ]

    def __str__(self):
        return f"Payment {self.transaction_id} ({self.payment_status})"
