import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import api.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Job",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("original_file_name", models.CharField(max_length=255)),
                ("original_file_path", models.CharField(max_length=512)),
                ("processed_file_path", models.CharField(blank=True, default="", max_length=512)),
                ("thumbnail_path", models.CharField(blank=True, default="", max_length=512)),
                ("source_language", models.CharField(default="en", max_length=8)),
                ("target_language", models.CharField(default="hi", max_length=8)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("uploading", "Uploading"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        default="uploading",
                        max_length=16,
                    ),
                ),
                ("progress", models.PositiveSmallIntegerField(default=0)),
                ("processing_steps", models.JSONField(default=api.models.default_processing_steps)),
                ("degraded_steps", models.JSONField(blank=True, default=list)),
                ("error_message", models.TextField(blank=True, default="")),
                ("duration", models.PositiveIntegerField(blank=True, null=True)),
                ("file_size", models.BigIntegerField(blank=True, null=True)),
                (
                    "video_type",
                    models.CharField(choices=[("movie", "Movie"), ("short", "Short")], default="movie", max_length=8),
                ),
                (
                    "voice_mode",
                    models.CharField(
                        choices=[
                            ("natural", "Natural"),
                            ("expressive", "Expressive"),
                            ("calm", "Calm"),
                            ("energetic", "Energetic"),
                        ],
                        default="natural",
                        max_length=16,
                    ),
                ),
                ("emotions", models.JSONField(blank=True, default=list)),
                ("subtitles", models.JSONField(blank=True, default=dict)),
                ("background_music", models.JSONField(blank=True, default=dict)),
                ("lip_sync_data", models.JSONField(blank=True, default=dict)),
                ("cloud_storage", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="dubbing_jobs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["owner", "-created_at"], name="job_owner_created_idx"),
                    models.Index(fields=["status"], name="job_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("plan_name", models.CharField(max_length=64)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("tax", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("payment_method", models.CharField(choices=[("card", "Card"), ("upi", "Upi")], max_length=8)),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("refunded", "Refunded"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("transaction_id", models.CharField(max_length=64, unique=True)),
                ("personal_details", models.JSONField(blank=True, default=dict)),
                ("payment_details", models.JSONField(blank=True, default=dict)),
                ("error_message", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["owner", "-created_at"], name="payment_owner_created_idx"),
                    models.Index(fields=["payment_status"], name="payment_status_idx"),
                ],
            },
        ),
    ]
