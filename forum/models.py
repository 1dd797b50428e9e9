"""
forum/models.py -- Domain dataclasses for the forum.

Post and Comment are pure data containers mirroring their rows. PostView and
CommentView are the viewer-specific renderings ForumService builds (author
name, like counts, whether the viewer liked it, whether the viewer may edit).

author_id is set once at creation and never reassigned.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Post:
    author_id: int
    content: str
    id: int | None = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str | None = None


@dataclass
class Comment:
    post_id: int
    author_id: int
    content: str
    id: int | None = None
    created_at: str = ""
    updated_at: str | None = None


@dataclass
class CommentView:
    id: int
    author: str
    content: str
    created_at: str
    updated_at: str | None
    like_count: int
    liked_by_viewer: bool
    editable: bool


@dataclass
class PostView:
    id: int
    author: str
    content: str
    created_at: str
    updated_at: str | None
    like_count: int
    liked_by_viewer: bool
    editable: bool
    comments: list[CommentView] = field(default_factory=list)
