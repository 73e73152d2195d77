from django.contrib import admin

from .models import Job, Payment


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ("id", "owner", "original_file_name", "source_language", "target_language", "status", "progress", "created_at")
    list_filter = ("status", "target_language")
    search_fields = ("original_file_name", "owner__username")


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("transaction_id", "owner", "plan_name", "total_amount", "payment_method", "payment_status", "created_at")
    list_filter = ("payment_status", "payment_method")
    search_fields = ("transaction_id", "owner__username")
