"""
Tests for MessageService.

Tests cover:
- Shared title/content validation
- Create: validation, per-organization title uniqueness
- Update: not found, inactive, validation, uniqueness
- Delete: not found, inactive, hard removal
- Get / list results
- Concurrent creates with the same title
"""

import uuid
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import pytest

from message_api.results import (
    Conflict,
    Created,
    Deleted,
    NotFound,
    Success,
    Updated,
    ValidationError,
)
from message_api.schemas import CreateMessageRequest, Message, UpdateMessageRequest
from message_api.service import (
    CONTENT_LENGTH_MESSAGE,
    TITLE_LENGTH_MESSAGE,
    MessageService,
    validate_title_and_content,
)

VALID_CONTENT = "This is some valid content."


def create_request(title="Valid title", content=VALID_CONTENT) -> CreateMessageRequest:
    return CreateMessageRequest(title=title, content=content)


def update_request(title="Updated title", content="Updated content with enough characters.") -> UpdateMessageRequest:
    return UpdateMessageRequest(title=title, content=content)


def seed_inactive(store, org_id, title="Inactive message") -> Message:
    """Place an inactive message directly in the store."""
    stored = store.create(Message(organization_id=org_id, title=title, content=VALID_CONTENT))
    stored.is_active = False
    return store.update(stored)


class TestValidation:
    """Test validate_title_and_content()."""

    @pytest.mark.parametrize("title", ["abc", "x" * 200])
    def test_title_bounds_accepted(self, title):
        assert validate_title_and_content(title, VALID_CONTENT) == {}

    @pytest.mark.parametrize("content", ["x" * 10, "x" * 1000])
    def test_content_bounds_accepted(self, content):
        assert validate_title_and_content("Valid title", content) == {}

    @pytest.mark.parametrize("title", [None, "", "     ", "ab", "x" * 201])
    def test_invalid_titles(self, title):
        errors = validate_title_and_content(title, VALID_CONTENT)
        assert errors == {"Title": [TITLE_LENGTH_MESSAGE]}

    @pytest.mark.parametrize("content", [None, "", " " * 20, "x" * 9, "x" * 1001])
    def test_invalid_contents(self, content):
        errors = validate_title_and_content("Valid title", content)
        assert errors == {"Content": [CONTENT_LENGTH_MESSAGE]}

    def test_errors_accumulate(self):
        """Test a short title and short content are both reported in one call."""
        errors = validate_title_and_content("ab", "x" * 9)

        assert set(errors) == {"Title", "Content"}


class TestCreateMessage:
    """Test create_message()."""

    def test_create_success(self, service, store, org_id):
        """Test a valid request returns Created with a fresh active message."""
        result = service.create_message(org_id, create_request())

        assert isinstance(result, Created)
        message = result.value
        assert message.title == "Valid title"
        assert message.content == VALID_CONTENT
        assert message.organization_id == org_id
        assert message.is_active is True
        assert message.created_at == message.updated_at
        assert store.get_by_id(org_id, message.id) is not None

    def test_create_null_request(self, org_id):
        """Test a missing request is a ValidationError on the Request field."""
        store = Mock()
        result = MessageService(store).create_message(org_id, None)

        assert isinstance(result, ValidationError)
        assert list(result.errors) == ["Request"]
        store.create.assert_not_called()

    def test_create_invalid_reports_both_fields(self, org_id):
        """Test title of length 2 and content of length 9 yield both errors, without touching the store."""
        store = Mock()
        result = MessageService(store).create_message(org_id, create_request("ab", "x" * 9))

        assert isinstance(result, ValidationError)
        assert set(result.errors) == {"Title", "Content"}
        store.get_all_by_organization.assert_not_called()
        store.create.assert_not_called()

    def test_create_duplicate_title_conflicts(self, service, store, org_id):
        """Test a second active message with the same title is rejected."""
        assert isinstance(service.create_message(org_id, create_request("Same title")), Created)

        result = service.create_message(org_id, create_request("Same title", "New valid content for duplicate."))

        assert isinstance(result, Conflict)
        titles = [m.title for m in store.get_all_by_organization(org_id)]
        assert titles.count("Same title") == 1

    def test_title_uniqueness_is_case_sensitive(self, service, org_id):
        """Test titles differing only by case do not conflict."""
        service.create_message(org_id, create_request("Release Notes"))

        result = service.create_message(org_id, create_request("release notes"))

        assert isinstance(result, Created)

    def test_inactive_title_can_be_reused(self, service, store, org_id):
        """Test inactive messages do not count toward uniqueness."""
        seed_inactive(store, org_id, title="Old title")

        result = service.create_message(org_id, create_request("Old title"))

        assert isinstance(result, Created)

    def test_release_notes_scenario(self, service, org_id, other_org_id):
        """Test the same title is allowed across organizations but not twice in one."""
        request = create_request("Release Notes", "v1.0 is now live today.")

        assert isinstance(service.create_message(org_id, request), Created)
        assert isinstance(service.create_message(other_org_id, request), Created)
        assert isinstance(service.create_message(org_id, request), Conflict)

    def test_concurrent_duplicate_creates(self, service, store, org_id):
        """Test racing creates with one title produce exactly one message."""
        request = create_request("Race title")

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: service.create_message(org_id, request), range(20)))

        assert sum(isinstance(r, Created) for r in results) == 1
        assert sum(isinstance(r, Conflict) for r in results) == 19
        assert len(store.get_all_by_organization(org_id)) == 1


class TestUpdateMessage:
    """Test update_message()."""

    def test_update_success(self, service, store, org_id):
        """Test a valid update replaces title and content."""
        created = service.create_message(org_id, create_request()).value

        result = service.update_message(org_id, created.id, update_request())

        assert isinstance(result, Updated)
        stored = store.get_by_id(org_id, created.id)
        assert stored.title == "Updated title"
        assert stored.content == "Updated content with enough characters."
        assert stored.updated_at >= stored.created_at
        assert stored.created_at == created.created_at

    def test_update_null_request(self, service, org_id):
        result = service.update_message(org_id, uuid.uuid4(), None)

        assert isinstance(result, ValidationError)
        assert list(result.errors) == ["Request"]

    def test_update_missing_message(self, org_id):
        """Test updating an unknown message returns NotFound and writes nothing."""
        store = Mock()
        store.get_by_id.return_value = None

        result = MessageService(store).update_message(org_id, uuid.uuid4(), update_request())

        assert isinstance(result, NotFound)
        store.update.assert_not_called()

    def test_update_other_organization(self, service, org_id, other_org_id):
        """Test a message cannot be updated through another organization."""
        created = service.create_message(org_id, create_request()).value

        result = service.update_message(other_org_id, created.id, update_request())

        assert isinstance(result, NotFound)

    def test_update_inactive_conflicts(self, service, store, org_id):
        """Test inactive messages are immutable."""
        inactive = seed_inactive(store, org_id)

        result = service.update_message(org_id, inactive.id, update_request())

        assert isinstance(result, Conflict)
        unchanged = store.get_by_id(org_id, inactive.id)
        assert unchanged.title == "Inactive message"
        assert unchanged.updated_at == inactive.updated_at

    def test_inactive_checked_before_validation(self, service, store, org_id):
        """Test an invalid payload against an inactive message is still a Conflict."""
        inactive = seed_inactive(store, org_id)

        result = service.update_message(org_id, inactive.id, update_request("ab", "short"))

        assert isinstance(result, Conflict)

    def test_update_invalid_payload(self, service, org_id):
        """Test invalid title and content are both reported."""
        created = service.create_message(org_id, create_request()).value

        result = service.update_message(org_id, created.id, update_request("", None))

        assert isinstance(result, ValidationError)
        assert set(result.errors) == {"Title", "Content"}

    def test_update_to_other_active_title_conflicts(self, service, org_id):
        """Test taking another active message's title is rejected."""
        service.create_message(org_id, create_request("First title"))
        second = service.create_message(org_id, create_request("Second title")).value

        result = service.update_message(org_id, second.id, update_request(title="First title"))

        assert isinstance(result, Conflict)

    def test_update_keeping_own_title(self, service, org_id):
        """Test a message may keep its own title."""
        created = service.create_message(org_id, create_request("Stable title")).value

        result = service.update_message(org_id, created.id, update_request(title="Stable title"))

        assert isinstance(result, Updated)

    def test_update_vanished_during_write(self, org_id):
        """Test a store that lost the record reports NotFound."""
        message = Message(organization_id=org_id, title="Valid title", content=VALID_CONTENT)
        store = Mock()
        store.get_by_id.return_value = message
        store.get_all_by_organization.return_value = [message]
        store.update.return_value = None

        result = MessageService(store).update_message(org_id, message.id, update_request())

        assert isinstance(result, NotFound)


class TestDeleteMessage:
    """Test delete_message()."""

    def test_delete_then_delete_again(self, service, store, org_id):
        """Test the first delete removes the record and the second reports NotFound."""
        created = service.create_message(org_id, create_request()).value

        assert isinstance(service.delete_message(org_id, created.id), Deleted)
        assert store.get_by_id(org_id, created.id) is None
        assert isinstance(service.delete_message(org_id, created.id), NotFound)

    def test_delete_missing(self, org_id):
        store = Mock()
        store.get_by_id.return_value = None

        result = MessageService(store).delete_message(org_id, uuid.uuid4())

        assert isinstance(result, NotFound)
        store.delete.assert_not_called()

    def test_delete_inactive_conflicts(self, service, store, org_id):
        """Test inactive messages cannot be deleted."""
        inactive = seed_inactive(store, org_id)

        result = service.delete_message(org_id, inactive.id)

        assert isinstance(result, Conflict)
        assert store.get_by_id(org_id, inactive.id) is not None

    def test_delete_frees_title(self, service, org_id):
        """Test a deleted message's title can be used again."""
        created = service.create_message(org_id, create_request("Reusable")).value
        service.delete_message(org_id, created.id)

        assert isinstance(service.create_message(org_id, create_request("Reusable")), Created)


class TestReadOperations:
    """Test get_message() and get_all_messages()."""

    def test_get_message(self, service, org_id):
        created = service.create_message(org_id, create_request()).value

        result = service.get_message(org_id, created.id)

        assert isinstance(result, Success)
        assert result.value.id == created.id

    def test_get_message_other_organization(self, service, org_id, other_org_id):
        """Test the right id under the wrong organization is NotFound."""
        created = service.create_message(org_id, create_request()).value

        assert isinstance(service.get_message(other_org_id, created.id), NotFound)

    def test_get_all_empty(self, service, org_id):
        result = service.get_all_messages(org_id)

        assert isinstance(result, Success)
        assert result.value == []

    def test_get_all_newest_first(self, service, org_id):
        """Test N creates list N messages, newest first."""
        created = [service.create_message(org_id, create_request(f"Title {i}")).value for i in range(4)]

        result = service.get_all_messages(org_id)

        assert [m.id for m in result.value] == [m.id for m in reversed(created)]
