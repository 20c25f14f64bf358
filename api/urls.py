from django.urls import path

from . import views


app_name = "api"


urlpatterns = [
    path("health/", views.HealthView.as_view(), name="health"),
    path("auth/token/", views.AuthTokenView.as_view(), name="auth-token"),
    path("books/", views.BookListView.as_view(), name="books-list"),
    path("books/<int:pk>/", views.BookDetailView.as_view(), name="book-detail"),
    path("swap-offers/", views.SwapOfferListCreateView.as_view(), name="swap-offers"),
    path(
        "swap-offers/<int:pk>/",
        views.SwapOfferDetailView.as_view(),
        name="swap-offer-detail",
    ),
    path(
        "swap-offers/<int:pk>/status/",
        views.SwapOfferStatusView.as_view(),
        name="swap-offer-status",
    ),
    path(
        "swap-offers/<int:pk>/complete/",
        views.SwapOfferCompleteView.as_view(),
        name="swap-offer-complete",
    ),
    path("chats/", views.ConversationListView.as_view(), name="chats"),
    path(
        "chats/<str:chat_id>/messages/",
        views.ChatMessagesView.as_view(),
        name="chat-messages",
    ),
    path(
        "chats/messages/<int:pk>/request-status/",
        views.MessageRequestStatusView.as_view(),
        name="message-request-status",
    ),
    path("chats/<str:chat_id>/read/", views.ChatReadView.as_view(), name="chat-read"),
    path("transactions/", views.TransactionListView.as_view(), name="transactions"),
]
