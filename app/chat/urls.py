"""
URL configuration for chat API.

URL Structure:
    Conversations:
        /conversations/                 GET

    Messages:
        /messages/                      POST
        /messages/{user_id}/            GET
        /messages/{user_id}/read/       POST

    Directory:
        /users/search/                  GET
        /users/{user_id}/               GET

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
WebSocket routes are in chat/routing.py.
"""

from django.urls import path

from chat.views import (
    ConversationListView,
    MarkConversationReadView,
    MessageCreateView,
    MessageHistoryView,
    UserDetailView,
    UserSearchView,
)

app_name = "chat"

urlpatterns = [
    path("conversations/", ConversationListView.as_view(), name="conversation-list"),
    path("messages/", MessageCreateView.as_view(), name="message-create"),
    path(
        "messages/<int:counterpart_id>/",
        MessageHistoryView.as_view(),
        name="message-history",
    ),
    path(
        "messages/<int:counterpart_id>/read/",
        MarkConversationReadView.as_view(),
        name="conversation-read",
    ),
    path("users/search/", UserSearchView.as_view(), name="user-search"),
    path("users/<int:user_id>/", UserDetailView.as_view(), name="user-detail"),
]
