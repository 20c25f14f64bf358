from django.contrib import admin

from .models import Transaction


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ("book", "buyer", "seller", "transaction_type", "status", "order_date")
    list_filter = ("transaction_type", "status")
    search_fields = ("book__title", "buyer__username", "seller__username")
    raw_id_fields = ("book", "buyer", "seller", "swap_offer")
