"""
Comment Threads

Every expense and every calendar entry carries exactly one CommentThread.
A thread is an ordered list of Comments; each Comment owns an ordered list
of Replies. Depth is fixed at one level: replies cannot be replied to.

DESIGN DECISION: Replies are addressed by id inside their owning comment.
There are no back-pointers and no generic recursive tree, because the
depth never changes.

The thread is a plain value. It does not know the time and does not talk
to storage: callers pass ``now`` and a policy in, and persist the parent
record afterwards.

Permission rules:
- Adding a comment or a reply is always allowed (text must be non-empty).
- Editing or deleting a comment is allowed only inside the edit window,
  anchored to the comment's creation timestamp. Editing never moves the
  timestamp, so a comment cannot be "refreshed" to stay editable.
- Replies are append-only. They have no edit window because they can
  never be edited or deleted once posted.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from src.errors import NotFoundError
from src.permissions.clock import ensure_utc
from src.permissions.policies import DEFAULT_EDIT_WINDOW_POLICY, EditWindowPolicy
from src.validation.validator import build_model, coerce_id, require_text


MAX_TEXT_LENGTH = 1000


class Author(BaseModel):
    """Who wrote something. Built from a Member."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[str] = None
    name: str = Field(default="User", max_length=100)
    phone: str = Field(default="", max_length=20)
    is_admin: bool = False


class Reply(BaseModel):
    """A reply to a comment. Append-only."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    comment_id: UUID
    text: str = Field(..., min_length=1, max_length=MAX_TEXT_LENGTH)
    author_name: str = Field(default="Admin", max_length=100)
    admin_id: Optional[str] = None
    timestamp: datetime


class Comment(BaseModel):
    """A comment on an expense or a calendar entry."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    parent_id: UUID = Field(
        ...,
        description="Expense id or calendar entry id"
    )
    text: str = Field(..., min_length=1, max_length=MAX_TEXT_LENGTH)
    author_id: Optional[str] = None
    author_name: str = Field(default="User", max_length=100)
    author_phone: str = Field(default="", max_length=20)
    timestamp: datetime = Field(
        ...,
        description="Creation instant; anchors the edit window"
    )
    edited_at: Optional[datetime] = None
    replies: list[Reply] = Field(default_factory=list)


class CommentView(BaseModel):
    """
    A comment as shown to a user at one instant.

    can_edit/can_delete/remaining_label are computed when the view is
    built. Views are thrown away after rendering, never stored.
    """

    id: UUID
    parent_id: UUID
    text: str
    author_id: Optional[str] = None
    author_name: str
    author_phone: str
    timestamp: datetime
    edited_at: Optional[datetime] = None
    replies: list[Reply] = Field(default_factory=list)
    can_edit: bool
    can_delete: bool
    remaining_label: str

    @classmethod
    def build(
        cls,
        comment: Comment,
        now: datetime,
        policy: EditWindowPolicy = DEFAULT_EDIT_WINDOW_POLICY,
    ) -> "CommentView":
        return cls(
            id=comment.id,
            parent_id=comment.parent_id,
            text=comment.text,
            author_id=comment.author_id,
            author_name=comment.author_name,
            author_phone=comment.author_phone,
            timestamp=comment.timestamp,
            edited_at=comment.edited_at,
            replies=[r.model_copy() for r in comment.replies],
            can_edit=policy.can_edit(comment.timestamp, now),
            can_delete=policy.can_delete(comment.timestamp, now),
            remaining_label=policy.remaining_label(comment.timestamp, now),
        )


class CommentThread(BaseModel):
    """
    Ordered comments (with nested replies) for one parent item.

    Insertion order IS chronological order: ids and timestamps are
    assigned at append time, so nothing is ever re-sorted.
    """

    parent_id: UUID
    comments: list[Comment] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.comments)

    def get_comment(self, comment_id) -> Comment:
        """Find a comment by id or raise NotFoundError."""
        wanted = coerce_id(comment_id, "Comment")
        for comment in self.comments:
            if comment.id == wanted:
                return comment
        raise NotFoundError(f"Comment not found: {comment_id}")

    def add_comment(self, author: Author, text: str, now: datetime) -> Comment:
        """
        Append a comment. No window check on creation.

        Raises:
            ValidationError: If text is empty after trimming or too long
        """
        comment = build_model(
            Comment,
            parent_id=self.parent_id,
            text=require_text(text, "comment", MAX_TEXT_LENGTH),
            author_id=author.id,
            author_name=author.name or "User",
            author_phone=author.phone,
            timestamp=ensure_utc(now),
        )
        self.comments.append(comment)
        return comment

    def edit_comment(
        self,
        comment_id,
        new_text: str,
        now: datetime,
        policy: EditWindowPolicy = DEFAULT_EDIT_WINDOW_POLICY,
    ) -> Comment:
        """
        Replace a comment's text. The creation timestamp is kept.

        Raises:
            NotFoundError: If the comment does not exist
            PermissionError: If the edit window has closed
            ValidationError: If the new text is empty or too long
        """
        comment = self.get_comment(comment_id)
        policy.ensure_can_modify(comment.timestamp, now, "Comment")
        comment.text = require_text(new_text, "comment", MAX_TEXT_LENGTH)
        comment.edited_at = ensure_utc(now)
        return comment

    def delete_comment(
        self,
        comment_id,
        now: datetime,
        policy: EditWindowPolicy = DEFAULT_EDIT_WINDOW_POLICY,
    ) -> Comment:
        """
        Remove a comment together with all its replies.

        Raises:
            NotFoundError: If the comment does not exist
            PermissionError: If the edit window has closed
        """
        comment = self.get_comment(comment_id)
        policy.ensure_can_modify(comment.timestamp, now, "Comment")
        self.comments = [c for c in self.comments if c.id != comment.id]
        return comment

    def add_reply(
        self,
        comment_id,
        author: Author,
        text: str,
        now: datetime,
    ) -> Reply:
        """
        Append a reply to an existing comment.

        Never creates a comment: an unknown comment id is an error.

        Raises:
            NotFoundError: If the parent comment does not exist
            ValidationError: If text is empty after trimming or too long
        """
        comment = self.get_comment(comment_id)
        reply = build_model(
            Reply,
            comment_id=comment.id,
            text=require_text(text, "reply", MAX_TEXT_LENGTH),
            author_name=author.name or "Admin",
            admin_id=author.id,
            timestamp=ensure_utc(now),
        )
        comment.replies.append(reply)
        return reply

    def list_comments(self) -> list[Comment]:
        """Copies of the comments, in insertion order."""
        return [c.model_copy(deep=True) for c in self.comments]

    def views(
        self,
        now: datetime,
        policy: EditWindowPolicy = DEFAULT_EDIT_WINDOW_POLICY,
    ) -> list[CommentView]:
        """Permission-annotated comments for rendering at ``now``."""
        return [CommentView.build(c, now, policy) for c in self.comments]
