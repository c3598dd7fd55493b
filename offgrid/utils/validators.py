"""
Custom validators for application data.
Provides reusable validation functions.
"""
import re
from typing import Optional

from fastapi import HTTPException, status

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
DISPLAY_NAME_MAX_LENGTH = 100
BIO_MAX_LENGTH = 200
EMOJI_MAX_LENGTH = 32

_USERNAME_PATTERN = re.compile(r"^\S+$")


def normalize_username(username: str) -> str:
    """Usernames are stored trimmed and lower-case."""
    return username.strip().lower()


def validate_username(username: str) -> str:
    """
    Validate a username and return its stored form.

    Args:
        username: Username as typed

    Returns:
        Normalized username

    Raises:
        HTTPException: 400 if too short, too long or containing whitespace
    """
    normalized = normalize_username(username)

    if len(normalized) < USERNAME_MIN_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Username must be at least {USERNAME_MIN_LENGTH} characters"
        )

    if len(normalized) > USERNAME_MAX_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Username must be at most {USERNAME_MAX_LENGTH} characters"
        )

    if not _USERNAME_PATTERN.match(normalized):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username cannot contain spaces"
        )

    return normalized


def validate_display_name(display_name: Optional[str]) -> str:
    """
    Validate a display name.

    Raises:
        HTTPException: 400 if empty or too long
    """
    cleaned = (display_name or "").strip()
    if not cleaned:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Display name is required"
        )
    if len(cleaned) > DISPLAY_NAME_MAX_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Display name must be at most {DISPLAY_NAME_MAX_LENGTH} characters"
        )
    return cleaned


def validate_bio(bio: Optional[str]) -> Optional[str]:
    """
    Validate a bio; blank bios are stored as None.

    Raises:
        HTTPException: 400 if longer than 200 characters
    """
    if bio is None:
        return None
    cleaned = bio.strip()
    if len(cleaned) > BIO_MAX_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Bio must be {BIO_MAX_LENGTH} characters or less"
        )
    return cleaned or None


def validate_emoji(emoji: str) -> bool:
    """
    Validate if string is a valid emoji.

    Args:
        emoji: String to validate

    Returns:
        True if valid emoji, False otherwise
    """
    if not emoji or len(emoji) > EMOJI_MAX_LENGTH or any(ch.isspace() for ch in emoji):
        return False

    emoji_pattern = re.compile(
        "["
        "\U0001F600-\U0001F64F"  # emoticons
        "\U0001F300-\U0001F5FF"  # symbols & pictographs
        "\U0001F680-\U0001F6FF"  # transport & map symbols
        "\U0001F900-\U0001F9FF"  # supplemental symbols
        "\U0001F1E0-\U0001F1FF"  # flags (iOS)
        "\U00002600-\U000027BF"  # misc symbols, dingbats (includes hearts)
        "\U000024C2-\U0001F251"
        "]",
        flags=re.UNICODE
    )
    return bool(emoji_pattern.match(emoji))


def validate_message_content(content: Optional[str]) -> str:
    """
    Validate text message content.

    Raises:
        HTTPException: 400 if the content is empty after trimming
    """
    cleaned = (content or "").strip()
    if not cleaned:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Message content cannot be empty"
        )
    return cleaned


def validate_file_type(mime_type: str, allowed_types: list) -> bool:
    """
    Validate file MIME type.

    Args:
        mime_type: MIME type to validate
        allowed_types: List of allowed MIME types

    Returns:
        True if valid, False otherwise
    """
    return (mime_type or "").lower() in [t.lower() for t in allowed_types]


def is_image_mime_type(mime_type: Optional[str]) -> bool:
    """Attachments with an image/* MIME type are sent as image messages."""
    return bool(mime_type) and mime_type.lower().startswith("image/")


def escape_like(term: str, escape: str = "\\") -> str:
    """Escape LIKE wildcards so a search term only matches literally."""
    return (
        term.replace(escape, escape * 2)
        .replace("%", f"{escape}%")
        .replace("_", f"{escape}_")
    )
