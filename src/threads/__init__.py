"""Comment threads attached to expenses and calendar entries."""

from src.threads.comment_thread import (
    Author,
    Comment,
    CommentThread,
    CommentView,
    Reply,
)

__all__ = [
    "Author",
    "Comment",
    "CommentThread",
    "CommentView",
    "Reply",
]
