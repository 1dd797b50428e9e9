"""
api/routes/v1/forum.py -- Forum REST endpoints.

Routes:
  GET    /api/v1/forum/posts                 -- list posts, newest first (public)
  POST   /api/v1/forum/posts                 -- create post (requires auth)
  PUT    /api/v1/forum/posts/{id}            -- edit post (author or ADMIN)
  DELETE /api/v1/forum/posts/{id}            -- delete post and its comments (author or ADMIN)
  POST   /api/v1/forum/posts/{id}/like       -- toggle like (requires auth)
  POST   /api/v1/forum/posts/{id}/comments   -- add comment (requires auth)
  PUT    /api/v1/forum/comments/{id}         -- edit comment (author or ADMIN)
  DELETE /api/v1/forum/comments/{id}         -- delete comment (author or ADMIN)
  POST   /api/v1/forum/comments/{id}/like    -- toggle like (requires auth)

Ownership is checked in ForumService via auth.ownership; these handlers only
pass the caller's identity through. Anonymous mutations are 401, non-owner
mutations 403, unknown ids 404.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from api.models import CommentRequest, CommentResponse, LikeResponse, MessageResponse, PostRequest, PostResponse
from auth.dependencies import get_identity
from auth.models import AuthenticatedIdentity
from forum.service import ForumService

router = APIRouter()


def get_forum_service(request: Request) -> ForumService:
    return request.app.state.forum_service


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------


@router.get("/forum/posts", response_model=list[PostResponse])
def list_posts(
    page: int = Query(default=0, ge=0),
    size: int = Query(default=10, ge=1, le=100),
    identity: AuthenticatedIdentity | None = Depends(get_identity),
    forum: ForumService = Depends(get_forum_service),
) -> list[PostResponse]:
    return [PostResponse.from_view(v) for v in forum.list_posts(identity, page=page, size=size)]


@router.post("/forum/posts", response_model=PostResponse)
def create_post(
    body: PostRequest,
    identity: AuthenticatedIdentity | None = Depends(get_identity),
    forum: ForumService = Depends(get_forum_service),
) -> PostResponse:
    return PostResponse.from_view(forum.create_post(identity, body.content))


@router.put("/forum/posts/{post_id}", response_model=PostResponse)
def edit_post(
    post_id: int,
    body: PostRequest,
    identity: AuthenticatedIdentity | None = Depends(get_identity),
    forum: ForumService = Depends(get_forum_service),
) -> PostResponse:
    return PostResponse.from_view(forum.edit_post(identity, post_id, body.content))


@router.delete("/forum/posts/{post_id}", response_model=MessageResponse)
def delete_post(
    post_id: int,
    identity: AuthenticatedIdentity | None = Depends(get_identity),
    forum: ForumService = Depends(get_forum_service),
) -> MessageResponse:
    forum.delete_post(identity, post_id)
    return MessageResponse(message="Post deleted.")


@router.post("/forum/posts/{post_id}/like", response_model=LikeResponse)
def like_post(
    post_id: int,
    identity: AuthenticatedIdentity | None = Depends(get_identity),
    forum: ForumService = Depends(get_forum_service),
) -> LikeResponse:
    return LikeResponse(liked=forum.toggle_post_like(identity, post_id))


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


@router.post("/forum/posts/{post_id}/comments", response_model=CommentResponse)
def add_comment(
    post_id: int,
    body: CommentRequest,
    identity: AuthenticatedIdentity | None = Depends(get_identity),
    forum: ForumService = Depends(get_forum_service),
) -> CommentResponse:
    return CommentResponse.from_view(forum.add_comment(identity, post_id, body.content))


@router.put("/forum/comments/{comment_id}", response_model=CommentResponse)
def edit_comment(
    comment_id: int,
    body: CommentRequest,
    identity: AuthenticatedIdentity | None = Depends(get_identity),
    forum: ForumService = Depends(get_forum_service),
) -> CommentResponse:
    return CommentResponse.from_view(forum.edit_comment(identity, comment_id, body.content))


@router.delete("/forum/comments/{comment_id}", response_model=MessageResponse)
def delete_comment(
    comment_id: int,
    identity: AuthenticatedIdentity | None = Depends(get_identity),
    forum: ForumService = Depends(get_forum_service),
) -> MessageResponse:
    forum.delete_comment(identity, comment_id)
    return MessageResponse(message="Comment deleted.")


@router.post("/forum/comments/{comment_id}/like", response_model=LikeResponse)
def like_comment(
    comment_id: int,
    identity: AuthenticatedIdentity | None = Depends(get_identity),
    forum: ForumService = Depends(get_forum_service),
) -> LikeResponse:
    return LikeResponse(liked=forum.toggle_comment_like(identity, comment_id))
