from django.contrib import admin

from .models import Book


@admin.register(Book)
class BookAdmin(admin.ModelAdmin):
    list_display = ("title", "author", "owner", "book_type", "status", "price")
    list_filter = ("status", "book_type", "condition")
    search_fields = ("title", "author", "course", "subject", "owner__username")
    raw_id_fields = ("owner",)
