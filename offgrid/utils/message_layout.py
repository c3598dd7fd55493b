"""
Rendering rules for the conversation view.

Turns stored messages into RenderedMessage rows: lifecycle and ephemeral
states, grouped reactions, date separators, and the collapsing of avatars
and timestamps within runs of consecutive messages.
"""
from datetime import datetime, date, timedelta
from typing import Dict, List, Optional, Sequence

from offgrid.models.message import Message, MessageReaction, MessageType, DELETED_MESSAGE_SENTINEL
from offgrid.schemas.message import (
    EphemeralState,
    MessageState,
    ReactionGroup,
    RenderedMessage,
)
from offgrid.schemas.profile import ProfileSummary
from offgrid.utils.datetime_utils import ensure_utc, has_elapsed, is_within, same_calendar_day, seconds_between, utc_now

EDIT_WINDOW = timedelta(minutes=5)
TIMESTAMP_GAP = timedelta(minutes=5)


def message_state(message: Message) -> MessageState:
    if message.is_deleted:
        return MessageState.DELETED
    if message.is_edited:
        return MessageState.EDITED
    return MessageState.ACTIVE


def ephemeral_state(message: Message, now: Optional[datetime] = None) -> EphemeralState:
    """Expired from the moment now reaches ephemeral_expires_at."""
    if message.ephemeral_expires_at is None:
        return EphemeralState.NONE
    if has_elapsed(message.ephemeral_expires_at, now):
        return EphemeralState.EXPIRED
    return EphemeralState.PENDING


def can_edit(
    message: Message,
    viewer_id: str,
    now: Optional[datetime] = None,
    window: timedelta = EDIT_WINDOW
) -> bool:
    """Only the sender may edit, only text, only while not deleted and inside the window."""
    return (
        message.sender_id == viewer_id
        and message.message_type == MessageType.TEXT
        and not message.is_deleted
        and is_within(message.created_at, window, now)
    )


def group_reactions(reactions: Sequence[MessageReaction], viewer_id: Optional[str] = None) -> List[ReactionGroup]:
    """
    Group reactions by emoji, in order of each emoji's first use.

    Args:
        reactions: Reactions of a single message
        viewer_id: Marks the groups the viewer has reacted in

    Returns:
        One ReactionGroup per emoji
    """
    groups: Dict[str, ReactionGroup] = {}
    ordered = sorted(reactions, key=lambda r: ensure_utc(r.created_at) if r.created_at else utc_now())

    for reaction in ordered:
        group = groups.get(reaction.emoji)
        if group is None:
            group = ReactionGroup(emoji=reaction.emoji, count=0)
            groups[reaction.emoji] = group

        if reaction.user_id in group.user_ids:
            continue

        group.user_ids.append(reaction.user_id)
        group.count += 1
        if reaction.profile is not None:
            group.users.append(ProfileSummary.model_validate(reaction.profile))
        if reaction.user_id == viewer_id:
            group.reacted_by_viewer = True

    return list(groups.values())


def date_separator_label(day: date, today: date) -> str:
    """'Today', 'Yesterday' or the ISO date."""
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return day.isoformat()


def render_message(
    message: Message,
    viewer_id: str,
    now: Optional[datetime] = None,
    previous: Optional[Message] = None,
    following: Optional[Message] = None,
    edit_window: timedelta = EDIT_WINDOW
) -> RenderedMessage:
    """
    Render one message given its neighbours in display order.

    Deleted messages always carry the sentinel and no file reference;
    expired ephemeral messages keep their metadata but lose file_url.
    """
    now = now or utc_now()
    state = message_state(message)
    eph_state = ephemeral_state(message, now)
    is_own = message.sender_id == viewer_id

    content = message.content
    file_url = message.file_url
    if state == MessageState.DELETED:
        content = DELETED_MESSAGE_SENTINEL
        file_url = None
    elif eph_state == EphemeralState.EXPIRED:
        file_url = None

    created_at = ensure_utc(message.created_at)

    if previous is None:
        show_timestamp = True
        date_separator = date_separator_label(created_at.date(), ensure_utc(now).date())
    else:
        show_timestamp = seconds_between(previous.created_at, created_at) > TIMESTAMP_GAP.total_seconds()
        if not same_calendar_day(previous.created_at, created_at):
            date_separator = date_separator_label(created_at.date(), ensure_utc(now).date())
        else:
            date_separator = None

    # Avatar on the last message of a run from another sender
    show_avatar = not is_own and (following is None or following.sender_id != message.sender_id)

    sender = ProfileSummary.model_validate(message.sender) if message.sender is not None else None

    return RenderedMessage(
        id=message.id,
        conversation_id=message.conversation_id,
        sender_id=message.sender_id,
        content=content,
        message_type=message.message_type,
        file_url=file_url,
        file_name=message.file_name,
        file_size=message.file_size,
        ephemeral_expires_at=message.ephemeral_expires_at,
        reply_to_id=message.reply_to_id,
        is_edited=bool(message.is_edited),
        edited_at=message.edited_at,
        is_deleted=bool(message.is_deleted),
        created_at=created_at,
        updated_at=message.updated_at,
        sender=sender,
        state=state,
        ephemeral_state=eph_state,
        is_own=is_own,
        can_edit=can_edit(message, viewer_id, now, edit_window),
        show_avatar=show_avatar,
        show_timestamp=show_timestamp,
        date_separator=date_separator,
        reactions=group_reactions(message.reactions, viewer_id),
    )


def render_messages(
    messages: Sequence[Message],
    viewer_id: str,
    now: Optional[datetime] = None,
    edit_window: timedelta = EDIT_WINDOW
) -> List[RenderedMessage]:
    """
    Render a conversation timeline.

    Args:
        messages: Messages of one conversation, any order
        viewer_id: Profile viewing the conversation
        now: Render time (defaults to utc_now())
        edit_window: Edit window used for can_edit

    Returns:
        Rendered messages ascending by created_at, ties broken by id
    """
    now = now or utc_now()
    ordered = sorted(messages, key=lambda m: (ensure_utc(m.created_at), m.id))

    rendered = []
    for index, message in enumerate(ordered):
        previous = ordered[index - 1] if index > 0 else None
        following = ordered[index + 1] if index + 1 < len(ordered) else None
        rendered.append(render_message(message, viewer_id, now, previous, following, edit_window))
    return rendered
