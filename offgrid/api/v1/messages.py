"""
Message API routes.
Provides endpoints for the conversation timeline, sending text and
attachments, editing, deleting and reactions.
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from slowapi import Limiter
from slowapi.util import get_remote_address

from offgrid.config import settings
from offgrid.core.database import get_db
from offgrid.dependencies import require_profile
from offgrid.schemas.message import (
    MessageCreate,
    MessageListResponse,
    MessageReactionCreate,
    MessageUpdate,
    ReactionToggleResponse,
    RenderedMessage,
)
from offgrid.services.message_service import MessageService
from offgrid.services.session_service import Session
from offgrid.services.storage_service import StorageService, get_storage_service

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=MessageListResponse,
    summary="Get conversation messages",
    description="Rendered timeline in display order for the caller."
)
async def get_conversation_messages(
    conversation_id: str,
    limit: int = Query(default=200, ge=1, le=500, description="Number of most recent messages"),
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    """
    Get the rendered messages of a conversation.

    Deleted messages carry the sentinel content, expired ephemeral images
    carry no file URL.
    """
    messages = await MessageService(db).list_messages(conversation_id, session.user_id, limit=limit)
    return MessageListResponse(data=messages, total=len(messages))


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=RenderedMessage,
    status_code=status.HTTP_201_CREATED,
    summary="Send a text message"
)
@limiter.limit(settings.rate_limit_messages)
async def send_message(
    request: Request,
    conversation_id: str,
    message_data: MessageCreate,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    """
    Send a text message to a conversation.

    - **content**: Message text
    - **reply_to_id**: Optional message of the same conversation
    """
    return await MessageService(db).send_text(
        conversation_id,
        session.user_id,
        message_data.content,
        reply_to_id=message_data.reply_to_id
    )


async def _send_attachment(
    conversation_id: str,
    file: UploadFile,
    session: Session,
    db: AsyncSession,
    storage: StorageService,
    image_only: bool,
    ephemeral: Optional[bool],
    reply_to_id: Optional[str]
) -> RenderedMessage:
    content = await file.read()
    return await MessageService(db, storage).send_file(
        conversation_id,
        session.user_id,
        content,
        filename=file.filename or "file",
        content_type=file.content_type or "application/octet-stream",
        image_only=image_only,
        ephemeral=ephemeral,
        reply_to_id=reply_to_id
    )


@router.post(
    "/conversations/{conversation_id}/files",
    response_model=RenderedMessage,
    status_code=status.HTTP_201_CREATED,
    summary="Send a file",
    description="Any file type up to 10MB. Images are sent as image messages."
)
@limiter.limit(settings.rate_limit_messages)
async def send_file(
    request: Request,
    conversation_id: str,
    file: UploadFile = File(...),
    ephemeral: Optional[bool] = Form(None),
    reply_to_id: Optional[str] = Form(None),
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service)
):
    return await _send_attachment(
        conversation_id, file, session, db, storage,
        image_only=False, ephemeral=ephemeral, reply_to_id=reply_to_id
    )


@router.post(
    "/conversations/{conversation_id}/images",
    response_model=RenderedMessage,
    status_code=status.HTTP_201_CREATED,
    summary="Send an image",
    description="Images only, up to 10MB. May be ephemeral."
)
@limiter.limit(settings.rate_limit_messages)
async def send_image(
    request: Request,
    conversation_id: str,
    file: UploadFile = File(...),
    ephemeral: Optional[bool] = Form(None),
    reply_to_id: Optional[str] = Form(None),
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service)
):
    return await _send_attachment(
        conversation_id, file, session, db, storage,
        image_only=True, ephemeral=ephemeral, reply_to_id=reply_to_id
    )


@router.put(
    "/{message_id}",
    response_model=RenderedMessage,
    summary="Edit a message",
    description="Only the sender, only text messages, only within 5 minutes of sending."
)
async def edit_message(
    message_id: str,
    message_data: MessageUpdate,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    return await MessageService(db).edit_message(message_id, session.user_id, message_data.content)


@router.delete(
    "/{message_id}",
    response_model=RenderedMessage,
    summary="Delete a message",
    description="Soft delete by the sender. The message stays in the timeline as deleted."
)
async def delete_message(
    message_id: str,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    return await MessageService(db).delete_message(message_id, session.user_id)


@router.post(
    "/{message_id}/reactions",
    response_model=ReactionToggleResponse,
    summary="Toggle a reaction",
    description="Adds the reaction, or removes it when the caller already reacted with this emoji."
)
async def toggle_reaction(
    message_id: str,
    reaction_data: MessageReactionCreate,
    session: Session = Depends(require_profile),
    db: AsyncSession = Depends(get_db)
):
    return await MessageService(db).toggle_reaction(message_id, session.user_id, reaction_data.emoji)
