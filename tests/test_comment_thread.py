"""
Tests for CommentThread (the pure value) and the thread operations the
stores expose on top of it.
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from src.errors import NotFoundError, PermissionError, ValidationError
from src.models.audit import AuditEventType
from src.permissions.policies import EditWindowPolicy
from src.threads.comment_thread import MAX_TEXT_LENGTH, Author, CommentThread


T0 = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)
ASHA = Author(id="m1", name="Asha", phone="9876543210", is_admin=True)
RAVI = Author(id="m2", name="Ravi", phone="9123456780")


@pytest.fixture
def thread():
    return CommentThread(parent_id=uuid4())


class TestAddComment:
    """Adding comments never consults the window."""

    def test_add_comment(self, thread):
        comment = thread.add_comment(RAVI, "  Was this the big bag?  ", T0)
        assert comment.text == "Was this the big bag?"
        assert comment.timestamp == T0
        assert comment.parent_id == thread.parent_id
        assert comment.author_name == "Ravi"
        assert comment.author_phone == "9123456780"
        assert len(thread) == 1

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_text_rejected(self, thread, text):
        with pytest.raises(ValidationError):
            thread.add_comment(RAVI, text, T0)
        assert len(thread) == 0

    def test_insertion_order_kept(self, thread):
        first = thread.add_comment(RAVI, "first", T0 + timedelta(minutes=2))
        second = thread.add_comment(ASHA, "second", T0)
        ids = [c.id for c in thread.list_comments()]
        assert ids == [first.id, second.id]


class TestEditComment:
    """Edits are window-bound and never move the timestamp."""

    def test_edit_within_window(self, thread):
        comment = thread.add_comment(RAVI, "original", T0)
        edited = thread.edit_comment(comment.id, "changed", T0 + timedelta(minutes=4))
        assert edited.text == "changed"
        assert edited.timestamp == T0
        assert edited.edited_at == T0 + timedelta(minutes=4)

    def test_edit_does_not_extend_window(self, thread):
        """Test that editing at 4:59 leaves the window closing at 5:00."""
        comment = thread.add_comment(RAVI, "original", T0)
        thread.edit_comment(comment.id, "again", T0 + timedelta(minutes=4, seconds=59))
        with pytest.raises(PermissionError):
            thread.edit_comment(comment.id, "too late", T0 + timedelta(minutes=5))
        assert thread.get_comment(comment.id).text == "again"
        assert thread.get_comment(comment.id).timestamp == T0

    def test_edit_after_window(self, thread):
        comment = thread.add_comment(RAVI, "original", T0)
        with pytest.raises(PermissionError):
            thread.edit_comment(comment.id, "changed", T0 + timedelta(minutes=5))
        assert thread.get_comment(comment.id).text == "original"

    def test_edit_missing_comment(self, thread):
        with pytest.raises(NotFoundError):
            thread.edit_comment(uuid4(), "changed", T0)

    def test_edit_unparseable_id(self, thread):
        with pytest.raises(NotFoundError):
            thread.edit_comment("not-an-id", "changed", T0)

    def test_edit_empty_text(self, thread):
        comment = thread.add_comment(RAVI, "original", T0)
        with pytest.raises(ValidationError):
            thread.edit_comment(comment.id, "  ", T0)

    def test_permission_checked_before_text(self, thread):
        """Test that an expired comment reports the window, not the text."""
        comment = thread.add_comment(RAVI, "original", T0)
        with pytest.raises(PermissionError):
            thread.edit_comment(comment.id, "", T0 + timedelta(minutes=6))


class TestDeleteComment:
    """Deleting removes the comment and its replies together."""

    def test_delete_with_replies(self, thread):
        comment = thread.add_comment(RAVI, "question", T0)
        thread.add_reply(comment.id, ASHA, "answer", T0 + timedelta(seconds=10))
        removed = thread.delete_comment(comment.id, T0 + timedelta(minutes=1))
        assert len(removed.replies) == 1
        assert len(thread) == 0

    def test_delete_after_window(self, thread):
        comment = thread.add_comment(RAVI, "question", T0)
        with pytest.raises(PermissionError):
            thread.delete_comment(comment.id, T0 + timedelta(minutes=5))
        assert len(thread) == 1

    def test_delete_missing(self, thread):
        with pytest.raises(NotFoundError):
            thread.delete_comment(uuid4(), T0)


class TestReplies:
    """Replies are one level deep and append-only."""

    def test_reply_appends_in_order(self, thread):
        comment = thread.add_comment(RAVI, "question", T0)
        r1 = thread.add_reply(comment.id, ASHA, "one", T0 + timedelta(minutes=10))
        r2 = thread.add_reply(comment.id, ASHA, "two", T0 + timedelta(minutes=11))
        replies = thread.get_comment(comment.id).replies
        assert [r.id for r in replies] == [r1.id, r2.id]
        assert r1.comment_id == comment.id
        assert r1.author_name == "Asha"
        assert r1.admin_id == "m1"

    def test_reply_to_missing_comment_creates_nothing(self, thread):
        thread.add_comment(RAVI, "question", T0)
        with pytest.raises(NotFoundError):
            thread.add_reply(uuid4(), ASHA, "answer", T0)
        assert len(thread) == 1
        assert thread.list_comments()[0].replies == []

    def test_reply_needs_text(self, thread):
        comment = thread.add_comment(RAVI, "question", T0)
        with pytest.raises(ValidationError):
            thread.add_reply(comment.id, ASHA, "", T0)

    def test_reply_allowed_after_window(self, thread):
        """Test that replies have no window of their own."""
        comment = thread.add_comment(RAVI, "question", T0)
        reply = thread.add_reply(comment.id, ASHA, "late answer", T0 + timedelta(days=2))
        assert reply.timestamp == T0 + timedelta(days=2)


class TestTextLength:
    """Comment and reply text is capped the same way on add, edit and reply."""

    def test_longest_comment_accepted(self, thread):
        comment = thread.add_comment(RAVI, "x" * MAX_TEXT_LENGTH, T0)
        assert len(comment.text) == MAX_TEXT_LENGTH

    def test_add_too_long(self, thread):
        with pytest.raises(ValidationError, match="at most 1000"):
            thread.add_comment(RAVI, "x" * (MAX_TEXT_LENGTH + 1), T0)
        assert len(thread) == 0

    def test_edit_too_long_leaves_text(self, thread):
        comment = thread.add_comment(RAVI, "short", T0)
        with pytest.raises(ValidationError):
            thread.edit_comment(comment.id, "y" * 1500, T0 + timedelta(minutes=1))
        stored = thread.get_comment(comment.id)
        assert stored.text == "short"
        assert stored.edited_at is None

    def test_reply_too_long(self, thread):
        comment = thread.add_comment(RAVI, "question", T0)
        with pytest.raises(ValidationError):
            thread.add_reply(comment.id, ASHA, "z" * (MAX_TEXT_LENGTH + 1), T0)
        assert thread.get_comment(comment.id).replies == []

    def test_over_long_author_name_is_a_validation_error(self, thread):
        author = Author.model_construct(id="m9", name="n" * 200, phone="", is_admin=False)
        with pytest.raises(ValidationError):
            thread.add_comment(author, "hello", T0)


class TestViews:
    """Permission flags are computed at read time."""

    def test_views_follow_the_clock(self, thread):
        thread.add_comment(RAVI, "question", T0)
        policy = EditWindowPolicy()
        open_view = thread.views(T0 + timedelta(minutes=1), policy)[0]
        closed_view = thread.views(T0 + timedelta(minutes=5), policy)[0]
        assert open_view.can_edit and open_view.can_delete
        assert open_view.remaining_label == "4m 0s"
        assert not closed_view.can_edit and not closed_view.can_delete
        assert closed_view.remaining_label == "Locked"

    def test_list_comments_returns_copies(self, thread):
        thread.add_comment(RAVI, "question", T0)
        copy = thread.list_comments()[0]
        copy.text = "tampered"
        assert thread.list_comments()[0].text == "question"


class TestStoreThreadOperations:
    """Thread operations through a store: persisted and audited."""

    @pytest.mark.asyncio
    async def test_comment_persisted_and_audited(self, ledger, admin, member, audit_storage):
        expense = await ledger.create(date(2024, 3, 5), "groceries", Decimal("100"))
        comment = await ledger.add_comment(expense.id, member, "Which shop?")
        reply = await ledger.add_reply(expense.id, comment.id, admin, "The market")

        stored = await ledger.list_comments(expense.id)
        assert [c.id for c in stored] == [comment.id]
        assert stored[0].replies[0].id == reply.id

        types = [e.event_type for e in audit_storage.events]
        assert AuditEventType.COMMENT_ADDED in types
        assert AuditEventType.REPLY_ADDED in types

    @pytest.mark.asyncio
    async def test_refused_edit_is_audited(self, ledger, member, clock, audit_storage):
        expense = await ledger.create(date(2024, 3, 5), "groceries", Decimal("100"))
        comment = await ledger.add_comment(expense.id, member, "Which shop?")
        clock.advance(minutes=5)
        with pytest.raises(PermissionError):
            await ledger.edit_comment(expense.id, comment.id, "changed")
        denied = [e for e in audit_storage.events if e.event_type == AuditEventType.PERMISSION_DENIED]
        assert len(denied) == 1
        assert denied[0].entity_id == expense.id

    @pytest.mark.asyncio
    async def test_comment_views_tick_without_refresh(self, calendar, member, clock):
        entry = await calendar.create(date(2024, 3, 5), "rice", "Bought rice", author=member)
        await calendar.add_comment(entry.id, member, "Good price")
        assert calendar.comment_views(entry.id)[0].can_edit is True
        clock.advance(minutes=5)
        assert calendar.comment_views(entry.id)[0].can_edit is False

    @pytest.mark.asyncio
    async def test_comment_on_missing_parent(self, ledger, member):
        with pytest.raises(NotFoundError):
            await ledger.add_comment(uuid4(), member, "hello")

    @pytest.mark.asyncio
    async def test_anonymous_author(self, calendar):
        entry = await calendar.create(date(2024, 3, 5), "rice", "Bought rice")
        comment = await calendar.add_comment(entry.id, None, "from a guest")
        assert comment.author_name == "User"

    @pytest.mark.asyncio
    async def test_too_long_comment_refused_and_audited(self, ledger, member, audit_storage):
        expense = await ledger.create(date(2024, 3, 5), "groceries", Decimal("100"))
        with pytest.raises(ValidationError):
            await ledger.add_comment(expense.id, member, "x" * 1001)
        assert await ledger.list_comments(expense.id) == []
        assert audit_storage.events[-1].event_type == AuditEventType.VALIDATION_FAILED
