import os
from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "dubbing_service.settings")

celery_app = Celery("dubbing_service")
celery_app.config_from_object("django.conf:settings", namespace="CELERY")
celery_app.autodiscover_tasks()
