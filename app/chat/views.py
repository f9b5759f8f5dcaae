"""
API views for chat.

This module provides REST API endpoints for direct messaging:
- ConversationListView: The caller's conversations, most recent first
- MessageCreateView: Send a message (and push it in real time)
- MessageHistoryView: One page of history with a counterpart
- MarkConversationReadView: Mark a conversation read
- UserSearchView / UserDetailView: Directory search and lookup

URL Structure:
    /api/v1/chat/conversations/                  GET
    /api/v1/chat/messages/                       POST
    /api/v1/chat/messages/{user_id}/             GET
    /api/v1/chat/messages/{user_id}/read/        POST
    /api/v1/chat/users/search/                   GET
    /api/v1/chat/users/{user_id}/                GET

Design Decisions:
    - Views handle HTTP concerns only; logic lives in chat.services
    - Service error codes map to HTTP status via ERROR_STATUS
    - Unauthenticated requests are rejected by IsAuthenticated (401)
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.serializers import DirectoryUserSerializer, UserSearchQuerySerializer
from authentication.services import UserDirectoryService
from chat.models import conversation_id
from chat.serializers import (
    ConversationSummarySerializer,
    MarkReadResponseSerializer,
    MessageHistoryQuerySerializer,
    MessageSerializer,
    SendMessageSerializer,
)
from chat.services import ConversationIndexService, DeliveryService, MessageService

# Error codes that are not plain validation failures
ERROR_STATUS = {
    "RECEIVER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "USER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
}


def error_response(result) -> Response:
    """Translate a failed ServiceResult into an error Response."""
    return Response(
        result.to_response(),
        status=ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )


class ConversationListView(APIView):
    """
    GET: List the caller's conversations

    URL: /api/v1/chat/conversations/

    Each entry carries the counterpart, the last message, message and
    unread counts, and the counterpart's online flag. Ordered by last
    activity, most recent first.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List conversations",
        tags=["Chat"],
        responses={200: ConversationSummarySerializer(many=True)},
    )
    def get(self, request):
        result = ConversationIndexService.list_conversations(request.user)
        serializer = ConversationSummarySerializer(result.data, many=True)
        return Response(serializer.data)


class MessageCreateView(APIView):
    """
    POST: Send a message

    URL: /api/v1/chat/messages/

    Request body:
        {
            "receiver_id": 7,
            "content": "Is this still available?",
            "message_type": "text",          // Optional
            "correlation_token": "c-1"       // Optional, echoed in the "sent" event
        }

    The created message is pushed to both participants' WebSocket groups.
    A push failure does not fail the request: the message is persisted and
    the receiver sees it on the next fetch.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Send a message",
        tags=["Chat"],
        request=SendMessageSerializer,
        responses={
            201: MessageSerializer,
            400: OpenApiResponse(description="Validation error"),
            404: OpenApiResponse(description="Receiver not found"),
        },
    )
    def post(self, request):
        serializer = SendMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = MessageService.create_message(
            sender=request.user,
            receiver_id=data["receiver_id"],
            content=data["content"],
            message_type=data["message_type"],
        )
        if not result.success:
            return error_response(result)

        DeliveryService.dispatch(
            result.data,
            correlation_token=data.get("correlation_token") or None,
        )

        return Response(
            MessageSerializer(result.data).data,
            status=status.HTTP_201_CREATED,
        )


class MessageHistoryView(APIView):
    """
    GET: One page of messages with a counterpart

    URL: /api/v1/chat/messages/{user_id}/?page=1&page_size=50

    Page 1 holds the most recent messages. Every page is returned in
    chronological ascending order.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List messages with a user",
        tags=["Chat"],
        parameters=[MessageHistoryQuerySerializer],
        responses={200: MessageSerializer(many=True)},
    )
    def get(self, request, counterpart_id):
        query = MessageHistoryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        result = MessageService.list_messages(
            request.user,
            counterpart_id,
            page=query.validated_data["page"],
            page_size=query.validated_data["page_size"],
        )
        if not result.success:
            return error_response(result)

        return Response(MessageSerializer(result.data, many=True).data)


class MarkConversationReadView(APIView):
    """
    POST: Mark every message from a counterpart as read

    URL: /api/v1/chat/messages/{user_id}/read/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Mark conversation as read",
        tags=["Chat"],
        request=None,
        responses={200: MarkReadResponseSerializer},
    )
    def post(self, request, counterpart_id):
        result = MessageService.mark_conversation_read(request.user, counterpart_id)
        if not result.success:
            return error_response(result)

        return Response(
            {
                "conversation_id": conversation_id(request.user.pk, counterpart_id),
                "updated": result.data,
            }
        )


class UserSearchView(APIView):
    """
    GET: Search the user directory

    URL: /api/v1/chat/users/search/?query=ada&limit=10

    Case-insensitive match on name or email. The caller is never included.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Search users",
        tags=["Chat - Directory"],
        parameters=[UserSearchQuerySerializer],
        responses={200: DirectoryUserSerializer(many=True)},
    )
    def get(self, request):
        query = UserSearchQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        result = UserDirectoryService.search(
            query.validated_data["query"],
            limit=query.validated_data["limit"],
            exclude_user_id=request.user.pk,
        )
        if not result.success:
            return error_response(result)

        return Response(DirectoryUserSerializer(result.data, many=True).data)


class UserDetailView(APIView):
    """
    GET: Look up a user to start a conversation with

    URL: /api/v1/chat/users/{user_id}/

    Returns 400 for the caller's own id and 404 for unknown users.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get user for chat",
        tags=["Chat - Directory"],
        parameters=[
            OpenApiParameter("user_id", int, OpenApiParameter.PATH),
        ],
        responses={
            200: DirectoryUserSerializer,
            400: OpenApiResponse(description="Own user id"),
            404: OpenApiResponse(description="User not found"),
        },
    )
    def get(self, request, user_id):
        result = UserDirectoryService.find_counterpart(request.user, user_id)
        if not result.success:
            return error_response(result)

        return Response(DirectoryUserSerializer(result.data).data)
