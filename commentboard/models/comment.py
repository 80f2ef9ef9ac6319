"""
Comment Model
"""

from dataclasses import dataclass
from datetime import datetime


def parse_timestamp(value):
    """Parse an ISO-8601 timestamp as returned by the REST API."""
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return datetime.fromisoformat(text)


@dataclass(frozen=True)
class Comment:
    """One row of the comments table"""
    id: int
    content: str
    created_at: datetime
    user_id: str | None = None

    @classmethod
    def from_row(cls, row):
        return cls(
            id=int(row['id']),
            content=row.get('content') or '',
            created_at=parse_timestamp(row['created_at']),
            user_id=row.get('user_id'),
        )

    def __repr__(self):
        return f'<Comment {self.id} {self.created_at.isoformat()}>'


def newest_first(comments):
    """Return comments sorted by creation time, newest first."""
    return sorted(comments, key=lambda c: c.created_at, reverse=True)
