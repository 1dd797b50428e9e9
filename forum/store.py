"""
forum/store.py -- SQLAlchemy Core persistence layer for the forum.

Pattern: Repository + Data Mapper, same as auth/store.py. ForumStore is the
repository; _row_to_post / _row_to_comment are the mappers.

Authors are referenced by account id only. The forum never joins against the
accounts table; ForumService resolves authors through AccountStore.

Deleting a post removes its likes, its comments' likes, its comments and
finally the post, inside one transaction (engine.begin()).

Security: all queries use bound parameters. No f-strings in SQL.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, UniqueConstraint, func, select
from sqlalchemy.engine import Engine

from auth.store import make_engine
from forum.models import Comment, Post

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_posts = Table(
    "forum_posts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("author_id", Integer, nullable=False),
    Column("content", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32)),
)

_comments = Table(
    "forum_comments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("post_id", Integer, nullable=False, index=True),
    Column("author_id", Integer, nullable=False),
    Column("content", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32)),
)

_post_likes = Table(
    "forum_post_likes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("post_id", Integer, nullable=False),
    Column("account_id", Integer, nullable=False),
    UniqueConstraint("post_id", "account_id", name="uq_post_like"),
)

_comment_likes = Table(
    "forum_comment_likes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("comment_id", Integer, nullable=False),
    Column("account_id", Integer, nullable=False),
    UniqueConstraint("comment_id", "account_id", name="uq_comment_like"),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ForumStore:
    """Repository for posts, comments and likes."""

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    def create_post(self, post: Post) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                _posts.insert().values(author_id=post.author_id, content=post.content, created_at=_now_iso())
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_post(self, post_id: int) -> Post | None:
        with self.engine.connect() as conn:
            row = conn.execute(_posts.select().where(_posts.c.id == post_id)).fetchone()
        return _row_to_post(row) if row is not None else None

    def list_posts(self, limit: int, offset: int = 0) -> list[Post]:
        """Return one page of posts, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _posts.select().order_by(_posts.c.created_at.desc(), _posts.c.id.desc()).limit(limit).offset(offset)
            ).fetchall()
        return [_row_to_post(r) for r in rows]

    def update_post_content(self, post_id: int, content: str) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(
                _posts.update().where(_posts.c.id == post_id).values(content=content, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def delete_post(self, post_id: int) -> bool:
        """Delete a post together with its likes, comments and comment likes."""
        with self.engine.begin() as conn:
            comment_ids = select(_comments.c.id).where(_comments.c.post_id == post_id)
            conn.execute(_post_likes.delete().where(_post_likes.c.post_id == post_id))
            conn.execute(_comment_likes.delete().where(_comment_likes.c.comment_id.in_(comment_ids)))
            conn.execute(_comments.delete().where(_comments.c.post_id == post_id))
            result = conn.execute(_posts.delete().where(_posts.c.id == post_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def create_comment(self, comment: Comment) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                _comments.insert().values(
                    post_id=comment.post_id,
                    author_id=comment.author_id,
                    content=comment.content,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_comment(self, comment_id: int) -> Comment | None:
        with self.engine.connect() as conn:
            row = conn.execute(_comments.select().where(_comments.c.id == comment_id)).fetchone()
        return _row_to_comment(row) if row is not None else None

    def list_comments(self, post_id: int) -> list[Comment]:
        """Return a post's comments, oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _comments.select()
                .where(_comments.c.post_id == post_id)
                .order_by(_comments.c.created_at, _comments.c.id)
            ).fetchall()
        return [_row_to_comment(r) for r in rows]

    def update_comment_content(self, comment_id: int, content: str) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(
                _comments.update().where(_comments.c.id == comment_id).values(content=content, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def delete_comment(self, comment_id: int) -> bool:
        with self.engine.begin() as conn:
            conn.execute(_comment_likes.delete().where(_comment_likes.c.comment_id == comment_id))
            result = conn.execute(_comments.delete().where(_comments.c.id == comment_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Likes
    # ------------------------------------------------------------------

    def toggle_post_like(self, post_id: int, account_id: int) -> bool:
        """Like the post, or remove an existing like. Returns True if now liked."""
        return self._toggle(_post_likes, _post_likes.c.post_id, post_id, account_id)

    def toggle_comment_like(self, comment_id: int, account_id: int) -> bool:
        return self._toggle(_comment_likes, _comment_likes.c.comment_id, comment_id, account_id)

    def post_like_count(self, post_id: int) -> int:
        return self._count(_post_likes, _post_likes.c.post_id, post_id)

    def comment_like_count(self, comment_id: int) -> int:
        return self._count(_comment_likes, _comment_likes.c.comment_id, comment_id)

    def has_liked_post(self, post_id: int, account_id: int) -> bool:
        return self._exists(_post_likes, _post_likes.c.post_id, post_id, account_id)

    def has_liked_comment(self, comment_id: int, account_id: int) -> bool:
        return self._exists(_comment_likes, _comment_likes.c.comment_id, comment_id, account_id)

    def _toggle(self, table: Table, target_col, target_id: int, account_id: int) -> bool:
        with self.engine.begin() as conn:
            existing = conn.execute(
                select(table.c.id).where((target_col == target_id) & (table.c.account_id == account_id))
            ).fetchone()
            if existing is not None:
                conn.execute(table.delete().where(table.c.id == existing.id))
                return False
            conn.execute(table.insert().values({target_col.name: target_id, "account_id": account_id}))
            return True

    def _count(self, table: Table, target_col, target_id: int) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(table).where(target_col == target_id)).scalar()
        return result or 0

    def _exists(self, table: Table, target_col, target_id: int, account_id: int) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(table.c.id).where((target_col == target_id) & (table.c.account_id == account_id))
            ).fetchone()
        return row is not None

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern -- DB row -> domain dataclass)
# ---------------------------------------------------------------------------


def _row_to_post(row) -> Post:
    return Post(
        id=row.id,
        author_id=row.author_id,
        content=row.content,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_comment(row) -> Comment:
    return Comment(
        id=row.id,
        post_id=row.post_id,
        author_id=row.author_id,
        content=row.content,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
