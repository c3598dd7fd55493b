"""
Conversation API routes.
Provides endpoints for opening direct chats, listing conversations, read
cursors, settings and typing users.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from offgrid.core.database import get_db
from offgrid.dependencies import require_profile
from offgrid.schemas.conversation import (
    ConversationListResponse,
    ConversationResponse,
    ConversationSettingsResponse,
    ConversationSettingsUpdate,
    DirectConversationCreate,
    TypingUsersResponse,
    UnreadCountResponse,
)
from offgrid.schemas.profile import ProfileSummary
from offgrid.services.conversation_service import ConversationService
from offgrid.services.session_service import Session
from offgrid.services.typing_service import TypingService

router = APIRouter()


@router.post(
    "/direct",
    response_model=ConversationResponse,
    status_code=status.HTTP_200_OK,
    summary="Open the direct chat with a friend",
    description="Returns the existing direct conversation of the pair or creates it."
)
async def open_direct_conversation(
    payload: DirectConversationCreate,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    """
    Find or create the direct conversation with a friend.

    - **user_id**: The friend to chat with
    """
    return await ConversationService(db).open_direct(session.user_id, payload.user_id)


@router.get(
    "/",
    response_model=ConversationListResponse,
    summary="List the caller's conversations",
    description="Most recently active first, with last message preview and unread count."
)
async def list_conversations(
    q: Optional[str] = Query(None, description="Search conversation or participant name"),
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    conversations = await ConversationService(db).list_conversations(session.user_id, q)
    return ConversationListResponse(data=conversations, total=len(conversations))


@router.get(
    "/unread-count",
    response_model=UnreadCountResponse,
    summary="Aggregate unread badge",
    description="Unread messages from others across all conversations."
)
async def get_total_unread(
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    count = await ConversationService(db).total_unread(session.user_id)
    return UnreadCountResponse(unread_count=count)


@router.get(
    "/{conversation_id}",
    response_model=ConversationResponse,
    summary="Get a conversation by ID",
    description="Opening a conversation marks it read."
)
async def get_conversation(
    conversation_id: str,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    return await ConversationService(db).get_conversation(conversation_id, session.user_id)


@router.post(
    "/{conversation_id}/read",
    response_model=UnreadCountResponse,
    summary="Mark a conversation read"
)
async def mark_conversation_read(
    conversation_id: str,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    service = ConversationService(db)
    await service.mark_read(conversation_id, session.user_id)
    count = await service.unread_count(conversation_id, session.user_id)
    return UnreadCountResponse(conversation_id=conversation_id, unread_count=count)


@router.get(
    "/{conversation_id}/unread-count",
    response_model=UnreadCountResponse,
    summary="Unread count of one conversation"
)
async def get_unread_count(
    conversation_id: str,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    count = await ConversationService(db).unread_count(conversation_id, session.user_id)
    return UnreadCountResponse(conversation_id=conversation_id, unread_count=count)


@router.get(
    "/{conversation_id}/settings",
    response_model=ConversationSettingsResponse,
    summary="Get ephemeral media settings"
)
async def get_conversation_settings(
    conversation_id: str,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    return await ConversationService(db).get_settings(conversation_id, session.user_id)


@router.put(
    "/{conversation_id}/settings",
    response_model=ConversationSettingsResponse,
    summary="Update ephemeral media settings"
)
async def update_conversation_settings(
    conversation_id: str,
    payload: ConversationSettingsUpdate,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    return await ConversationService(db).update_settings(
        conversation_id,
        session.user_id,
        ephemeral_enabled=payload.ephemeral_enabled,
        ephemeral_duration_minutes=payload.ephemeral_duration_minutes
    )


@router.get(
    "/{conversation_id}/typing",
    response_model=TypingUsersResponse,
    summary="Users currently typing",
    description="Participants other than the caller whose typing flag is fresh."
)
async def get_typing_users(
    conversation_id: str,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    profiles = await TypingService(db).get_typing_users(conversation_id, session.user_id)
    return TypingUsersResponse(
        conversation_id=conversation_id,
        users=[ProfileSummary.model_validate(p) for p in profiles]
    )
