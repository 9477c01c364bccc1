"""
User model for MediaWiki accounts that import or review mismatches.

Users are identified by their MediaWiki user id; the username is kept for
display and refreshed whenever the upstream auth proxy reports a rename.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, CreatedAtMixin, UUIDMixin


class User(UUIDMixin, CreatedAtMixin, Base):
    """
    A MediaWiki account known to the service.

    Attributes:
        id: UUID7 primary key
        username: MediaWiki username (display name)
        mw_userid: Numeric MediaWiki user id (unique)
        created_at: When the account was first seen
    """

    username: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="MediaWiki username",
    )

    mw_userid: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        unique=True,
        comment="Numeric MediaWiki user id",
    )

    def __repr__(self) -> str:
        return f"<User(username={self.username!r}, mw_userid={self.mw_userid})>"

    @property
    def public_identity(self) -> dict[str, str | int]:
        """Identity exposed to the UI: display name and numeric id."""
        return {"name": self.username, "id": self.mw_userid}
