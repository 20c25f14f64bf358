from django.contrib import admin

from .models import SwapOffer, SwapOutboxEntry


class SwapOutboxEntryInline(admin.TabularInline):
    model = SwapOutboxEntry
    extra = 0
    fields = ("kind", "state", "attempts", "last_error", "delivered_at")
    readonly_fields = fields
    can_delete = False


@admin.register(SwapOffer)
class SwapOfferAdmin(admin.ModelAdmin):
    list_display = ("id", "chat_id", "requester", "owner", "requested_book", "status", "timestamp")
    list_filter = ("status",)
    search_fields = ("chat_id", "requester__username", "owner__username", "requested_book__title")
    raw_id_fields = ("requester", "owner", "requested_book")
    filter_horizontal = ("offered_books",)
    readonly_fields = ("timestamp", "responded_at", "completed_at")
    inlines = [SwapOutboxEntryInline]


@admin.register(SwapOutboxEntry)
class SwapOutboxEntryAdmin(admin.ModelAdmin):
    list_display = ("offer", "kind", "state", "attempts", "created_at", "delivered_at")
    list_filter = ("kind", "state")
    search_fields = ("offer__chat_id", "last_error")
