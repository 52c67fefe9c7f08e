"""
Business rules for organization messages.

MessageService validates input, enforces title uniqueness among active
messages and the active-only lifecycle, and reports every expected
outcome as a Result variant instead of raising.
"""

import logging
import threading
from typing import Optional
from uuid import UUID

from message_api.results import (
    Conflict,
    Created,
    Deleted,
    NotFound,
    Result,
    Success,
    Updated,
    ValidationError,
)
from message_api.schemas import CreateMessageRequest, Message, UpdateMessageRequest
from message_api.storage import MessageStore
from message_api.utils import utc_now

logger = logging.getLogger(__name__)

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 200
CONTENT_MIN_LENGTH = 10
CONTENT_MAX_LENGTH = 1000

TITLE_LENGTH_MESSAGE = "Title must be between 3 and 200 characters."
CONTENT_LENGTH_MESSAGE = "Content must be between 10 and 1000 characters."
NULL_REQUEST_MESSAGE = "Request body cannot be null."
NOT_FOUND_MESSAGE = "Message not found."
DUPLICATE_TITLE_MESSAGE = "Title must be unique for this organization."
INACTIVE_UPDATE_MESSAGE = "Only active messages can be updated."
INACTIVE_DELETE_MESSAGE = "Only active messages can be deleted."


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def validate_title_and_content(title: Optional[str], content: Optional[str]) -> dict[str, list[str]]:
    """
    Check title and content lengths.

    Both fields are always checked, so the returned mapping holds every
    violation. An empty mapping means the input is valid.
    """
    errors: dict[str, list[str]] = {}

    if _is_blank(title) or not TITLE_MIN_LENGTH <= len(title) <= TITLE_MAX_LENGTH:
        errors["Title"] = [TITLE_LENGTH_MESSAGE]

    if _is_blank(content) or not CONTENT_MIN_LENGTH <= len(content) <= CONTENT_MAX_LENGTH:
        errors["Content"] = [CONTENT_LENGTH_MESSAGE]

    return errors


def _null_request() -> ValidationError:
    return ValidationError({"Request": [NULL_REQUEST_MESSAGE]})


class MessageService:
    """
    Orchestrates store calls for the five message operations.

    Create, update and delete run under one service-wide lock so the
    uniqueness check and the write that follows it cannot interleave
    with another writer. Reads go straight to the store.
    """

    def __init__(self, store: MessageStore) -> None:
        self._store = store
        self._write_lock = threading.Lock()

    def _title_taken(self, organization_id: UUID, title: str, exclude_id: Optional[UUID] = None) -> bool:
        # Case-sensitive on purpose; store.get_by_title ignores case
        return any(
            message.is_active and message.title == title and message.id != exclude_id
            for message in self._store.get_all_by_organization(organization_id)
        )

    def create_message(self, organization_id: UUID, request: Optional[CreateMessageRequest]) -> Result:
        if request is None:
            return _null_request()

        errors = validate_title_and_content(request.title, request.content)
        if errors:
            logger.info(f"Create rejected for organization {organization_id}: {sorted(errors)}")
            return ValidationError(errors)

        with self._write_lock:
            if self._title_taken(organization_id, request.title):
                logger.info(f"Duplicate title in organization {organization_id}: {request.title!r}")
                return Conflict(DUPLICATE_TITLE_MESSAGE)

            message = Message(
                organization_id=organization_id,
                title=request.title,
                content=request.content,
                is_active=True,
            )
            created = self._store.create(message)

        logger.info(f"Message created: id={created.id}, organization_id={organization_id}")
        return Created(created)

    def update_message(
        self,
        organization_id: UUID,
        message_id: UUID,
        request: Optional[UpdateMessageRequest],
    ) -> Result:
        if request is None:
            return _null_request()

        with self._write_lock:
            message = self._store.get_by_id(organization_id, message_id)
            if message is None:
                return NotFound(NOT_FOUND_MESSAGE)

            if not message.is_active:
                return Conflict(INACTIVE_UPDATE_MESSAGE)

            errors = validate_title_and_content(request.title, request.content)
            if errors:
                logger.info(f"Update rejected for message {message_id}: {sorted(errors)}")
                return ValidationError(errors)

            if self._title_taken(organization_id, request.title, exclude_id=message_id):
                logger.info(f"Duplicate title in organization {organization_id}: {request.title!r}")
                return Conflict(DUPLICATE_TITLE_MESSAGE)

            message.title = request.title
            message.content = request.content
            message.updated_at = utc_now()

            if self._store.update(message) is None:
                return NotFound(NOT_FOUND_MESSAGE)

        logger.info(f"Message updated: id={message_id}, organization_id={organization_id}")
        return Updated()

    def delete_message(self, organization_id: UUID, message_id: UUID) -> Result:
        with self._write_lock:
            message = self._store.get_by_id(organization_id, message_id)
            if message is None:
                return NotFound(NOT_FOUND_MESSAGE)

            if not message.is_active:
                return Conflict(INACTIVE_DELETE_MESSAGE)

            # Hard removal: the record leaves the store, is_active is never flipped
            if not self._store.delete(message.organization_id, message.id):
                return NotFound(NOT_FOUND_MESSAGE)

        logger.info(f"Message deleted: id={message_id}, organization_id={organization_id}")
        return Deleted()

    def get_message(self, organization_id: UUID, message_id: UUID) -> Result:
        message = self._store.get_by_id(organization_id, message_id)
        if message is None:
            return NotFound(NOT_FOUND_MESSAGE)
        return Success(message)

    def get_all_messages(self, organization_id: UUID) -> Result:
        return Success(self._store.get_all_by_organization(organization_id))
