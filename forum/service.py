"""
forum/service.py -- Forum operations with ownership-gated edit and delete.

ForumService loads each post/comment and its authoring account, then asks
auth.ownership whether the acting identity may change it. The author or any
ADMIN may edit/delete; everyone else gets Forbidden. The same rule drives the
`editable` flag rendered for each viewer.

Anonymous callers (identity None) may list posts but get
AuthenticationError (401) on every mutation, likes included.
"""

from __future__ import annotations

import logging

from auth.errors import AuthenticationError, NotFoundError
from auth.models import Account, AuthenticatedIdentity
from auth.ownership import check_resource_ownership, require_resource_ownership
from auth.store import AccountStore
from forum.models import Comment, CommentView, Post, PostView
from forum.store import ForumStore

logger = logging.getLogger("budgettracker.forum")


def _require_actor(actor: AuthenticatedIdentity | None) -> AuthenticatedIdentity:
    if actor is None:
        raise AuthenticationError()
    return actor


class ForumService:
    def __init__(self, forum: ForumStore, accounts: AccountStore) -> None:
        self._forum = forum
        self._accounts = accounts

    # ------------------------------------------------------------------
    # Loading helpers
    # ------------------------------------------------------------------

    def _post_or_404(self, post_id: int) -> Post:
        post = self._forum.get_post(post_id)
        if post is None:
            raise NotFoundError("Post not found.")
        return post

    def _comment_or_404(self, comment_id: int) -> Comment:
        comment = self._forum.get_comment(comment_id)
        if comment is None:
            raise NotFoundError("Comment not found.")
        return comment

    def _author(self, author_id: int, cache: dict[int, Account | None] | None = None) -> Account | None:
        if cache is None:
            return self._accounts.get_by_id(author_id)
        if author_id not in cache:
            cache[author_id] = self._accounts.get_by_id(author_id)
        return cache[author_id]

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _render_comment(
        self,
        comment: Comment,
        viewer: AuthenticatedIdentity | None,
        authors: dict[int, Account | None],
    ) -> CommentView:
        author = self._author(comment.author_id, authors)
        return CommentView(
            id=comment.id,
            author=author.username if author else "",
            content=comment.content,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
            like_count=self._forum.comment_like_count(comment.id),
            liked_by_viewer=viewer is not None and self._forum.has_liked_comment(comment.id, viewer.account_id),
            editable=check_resource_ownership(viewer, author),
        )

    def render_post(
        self,
        post: Post,
        viewer: AuthenticatedIdentity | None,
        authors: dict[int, Account | None] | None = None,
    ) -> PostView:
        authors = {} if authors is None else authors
        author = self._author(post.author_id, authors)
        return PostView(
            id=post.id,
            author=author.username if author else "",
            content=post.content,
            created_at=post.created_at,
            updated_at=post.updated_at,
            like_count=self._forum.post_like_count(post.id),
            liked_by_viewer=viewer is not None and self._forum.has_liked_post(post.id, viewer.account_id),
            editable=check_resource_ownership(viewer, author),
            comments=[self._render_comment(c, viewer, authors) for c in self._forum.list_comments(post.id)],
        )

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    def list_posts(self, viewer: AuthenticatedIdentity | None, page: int = 0, size: int = 10) -> list[PostView]:
        """Return one page of posts, newest first, rendered for viewer."""
        authors: dict[int, Account | None] = {}
        posts = self._forum.list_posts(limit=size, offset=page * size)
        return [self.render_post(p, viewer, authors) for p in posts]

    def create_post(self, actor: AuthenticatedIdentity | None, content: str) -> PostView:
        actor = _require_actor(actor)
        post_id = self._forum.create_post(Post(author_id=actor.account_id, content=content))
        logger.info("Post %s created by %s", post_id, actor.username)
        return self.render_post(self._post_or_404(post_id), actor)

    def edit_post(self, actor: AuthenticatedIdentity | None, post_id: int, content: str) -> PostView:
        actor = _require_actor(actor)
        post = self._post_or_404(post_id)
        require_resource_ownership(actor, self._author(post.author_id), "post")
        self._forum.update_post_content(post_id, content)
        return self.render_post(self._post_or_404(post_id), actor)

    def delete_post(self, actor: AuthenticatedIdentity | None, post_id: int) -> None:
        actor = _require_actor(actor)
        post = self._post_or_404(post_id)
        require_resource_ownership(actor, self._author(post.author_id), "post")
        self._forum.delete_post(post_id)
        logger.info("Post %s deleted by %s", post_id, actor.username)

    def toggle_post_like(self, actor: AuthenticatedIdentity | None, post_id: int) -> bool:
        actor = _require_actor(actor)
        self._post_or_404(post_id)
        return self._forum.toggle_post_like(post_id, actor.account_id)

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def add_comment(self, actor: AuthenticatedIdentity | None, post_id: int, content: str) -> CommentView:
        actor = _require_actor(actor)
        self._post_or_404(post_id)
        comment_id = self._forum.create_comment(Comment(post_id=post_id, author_id=actor.account_id, content=content))
        return self._render_comment(self._comment_or_404(comment_id), actor, {})

    def edit_comment(self, actor: AuthenticatedIdentity | None, comment_id: int, content: str) -> CommentView:
        actor = _require_actor(actor)
        comment = self._comment_or_404(comment_id)
        require_resource_ownership(actor, self._author(comment.author_id), "comment")
        self._forum.update_comment_content(comment_id, content)
        return self._render_comment(self._comment_or_404(comment_id), actor, {})

    def delete_comment(self, actor: AuthenticatedIdentity | None, comment_id: int) -> None:
        actor = _require_actor(actor)
        comment = self._comment_or_404(comment_id)
        require_resource_ownership(actor, self._author(comment.author_id), "comment")
        self._forum.delete_comment(comment_id)
        logger.info("Comment %s deleted by %s", comment_id, actor.username)

    def toggle_comment_like(self, actor: AuthenticatedIdentity | None, comment_id: int) -> bool:
        actor = _require_actor(actor)
        self._comment_or_404(comment_id)
        return self._forum.toggle_comment_like(comment_id, actor.account_id)
