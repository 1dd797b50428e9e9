"""forum/ -- Community forum: posts, comments and likes.

Layer rule: forum/ may import from auth/ and core/. It does NOT import from api/.
Edit/delete rights are decided by auth.ownership, never re-derived here.
"""
