"""
Thread-Owning Stores

Both the expense ledger and the calendar entry store own one CommentThread
per item and expose the same comment operations on it. This base class
holds those operations once.

Flow for every comment mutation:
1. Fresh read of the parent record (NotFoundError if it is gone)
2. Mutate the embedded thread (policy + validation checks happen here)
3. Write the whole parent record back
4. Reconcile the local snapshot with another fresh read
5. Audit the change

Refused mutations (validation or permission) are audited before the error
propagates to the caller.
"""

from abc import ABC, abstractmethod
from typing import Optional, Union
from uuid import UUID

from src.audit.logger import AuditLogger
from src.errors import NotFoundError, PermissionError, ValidationError
from src.models.household import Member
from src.permissions.clock import Clock, SystemClock
from src.permissions.policies import EditWindowPolicy
from src.threads.comment_thread import Author, Comment, CommentView, Reply
from src.validation.validator import coerce_id


AuthorLike = Union[Author, Member, None]


def as_author(who: AuthorLike) -> Author:
    """Accept a Member, an Author, or nobody (anonymous user)."""
    if who is None:
        return Author()
    if isinstance(who, Member):
        return who.as_author()
    return who


class ThreadOwner(ABC):
    """
    Shared comment operations for stores whose items carry a thread.

    Subclasses provide ``_load`` / ``_persist`` / ``refresh`` and a
    ``_cached`` lookup into their snapshot.
    """

    # Used in audit events and error messages
    entity_type = "item"
    entity_label = "Item"

    def __init__(
        self,
        policy: Optional[EditWindowPolicy] = None,
        clock: Optional[Clock] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.policy = policy or EditWindowPolicy()
        self.clock = clock or SystemClock()
        self.audit = audit_logger or AuditLogger()

    @abstractmethod
    async def _load(self, parent_id: UUID):
        """Fresh read of one parent record, or None if it does not exist."""
        pass

    @abstractmethod
    async def _persist(self, item) -> None:
        """Write a modified parent record back to storage."""
        pass

    @abstractmethod
    async def refresh(self) -> None:
        """Replace the local snapshot with a fresh read."""
        pass

    @abstractmethod
    def _cached(self, parent_id: UUID):
        """Snapshot lookup, or None."""
        pass

    async def _require(self, parent_id) -> tuple[UUID, object]:
        wanted = coerce_id(parent_id, self.entity_label)
        item = await self._load(wanted)
        if item is None:
            raise NotFoundError(f"{self.entity_label} not found: {parent_id}")
        return wanted, item

    async def _refused(self, error: Exception, entity_id: Optional[UUID]) -> None:
        if isinstance(error, PermissionError):
            await self.audit.log_permission_denied(
                entity_type="comment",
                entity_id=entity_id,
                reason=str(error),
            )
        elif isinstance(error, ValidationError):
            await self.audit.log_validation_failed(
                entity_type="comment",
                reason=str(error),
                entity_id=entity_id,
            )

    # =========================================================================
    # COMMENT OPERATIONS
    # =========================================================================

    async def add_comment(self, parent_id, author: AuthorLike, text: str) -> Comment:
        """
        Add a comment to an item's thread.

        Raises:
            NotFoundError: If the item does not exist
            ValidationError: If text is empty after trimming or too long
        """
        wanted, item = await self._require(parent_id)
        writer = as_author(author)
        try:
            comment = item.thread.add_comment(writer, text, self.clock.now())
        except ValidationError as e:
            await self._refused(e, wanted)
            raise
        await self._persist(item)
        await self.refresh()
        await self.audit.log_comment_added(
            comment_id=comment.id,
            parent_type=self.entity_type,
            parent_id=wanted,
            actor=writer.name,
        )
        return comment

    async def edit_comment(self, parent_id, comment_id, new_text: str) -> Comment:
        """
        Replace a comment's text while its edit window is open.

        Raises:
            NotFoundError: If the item or the comment does not exist
            PermissionError: If the edit window has closed
            ValidationError: If the new text is empty or too long
        """
        wanted, item = await self._require(parent_id)
        try:
            comment = item.thread.edit_comment(
                comment_id, new_text, self.clock.now(), self.policy
            )
        except (PermissionError, ValidationError) as e:
            await self._refused(e, wanted)
            raise
        await self._persist(item)
        await self.refresh()
        await self.audit.log_comment_edited(comment.id, wanted)
        return comment

    async def delete_comment(self, parent_id, comment_id) -> Comment:
        """
        Delete a comment and its replies while its edit window is open.

        Raises:
            NotFoundError: If the item or the comment does not exist
            PermissionError: If the edit window has closed
        """
        wanted, item = await self._require(parent_id)
        try:
            comment = item.thread.delete_comment(
                comment_id, self.clock.now(), self.policy
            )
        except PermissionError as e:
            await self._refused(e, wanted)
            raise
        await self._persist(item)
        await self.refresh()
        await self.audit.log_comment_deleted(
            comment_id=comment.id,
            parent_id=wanted,
            reply_count=len(comment.replies),
        )
        return comment

    async def add_reply(
        self,
        parent_id,
        comment_id,
        author: AuthorLike,
        text: str,
    ) -> Reply:
        """
        Reply to an existing comment. Replies are permanent.

        Raises:
            NotFoundError: If the item or the comment does not exist
            ValidationError: If text is empty after trimming or too long
        """
        wanted, item = await self._require(parent_id)
        writer = as_author(author)
        try:
            reply = item.thread.add_reply(comment_id, writer, text, self.clock.now())
        except ValidationError as e:
            await self._refused(e, wanted)
            raise
        await self._persist(item)
        await self.refresh()
        await self.audit.log_reply_added(reply.id, reply.comment_id, writer.name)
        return reply

    async def list_comments(self, parent_id) -> list[Comment]:
        """
        Comments of one item, in insertion order, from a fresh read.

        Raises:
            NotFoundError: If the item does not exist
        """
        _, item = await self._require(parent_id)
        return item.thread.list_comments()

    def comment_views(self, parent_id) -> list[CommentView]:
        """
        Permission-annotated comments from the snapshot.

        No network call: safe to call on every UI tick.

        Raises:
            NotFoundError: If the item is not in the snapshot
        """
        wanted = coerce_id(parent_id, self.entity_label)
        item = self._cached(wanted)
        if item is None:
            raise NotFoundError(f"{self.entity_label} not found: {parent_id}")
        return item.thread.views(self.clock.now(), self.policy)
