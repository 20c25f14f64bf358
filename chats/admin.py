from django.contrib import admin

from .models import Message


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ("chat_id", "sender", "receiver", "message_type", "request_status", "read", "timestamp")
    list_filter = ("message_type", "request_status", "read")
    search_fields = ("chat_id", "text", "sender__username", "receiver__username")
    raw_id_fields = ("sender", "receiver", "book")
    readonly_fields = ("timestamp",)
