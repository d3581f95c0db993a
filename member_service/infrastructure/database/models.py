"""Member service collections and the collection registry."""

from typing import Any

from sqlalchemy import JSON, BigInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from member_service.infrastructure.database.base import Document


class Member(Document):
    """A member profile, identified by ``user_id`` and unique by ``handle_lower``."""

    __tablename__ = "members"
    __hash_key__ = "user_id"

    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    handle: Mapped[str] = mapped_column(String(64), nullable=False)
    handle_lower: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, index=True
    )
    email: Mapped[str | None] = mapped_column(String(255), index=True)
    first_name: Mapped[str | None] = mapped_column(String(64))
    last_name: Mapped[str | None] = mapped_column(String(64))
    description: Mapped[str | None] = mapped_column(Text)
    other_lang_name: Mapped[str | None] = mapped_column(String(64))
    status: Mapped[str | None] = mapped_column(String(32))
    home_country_code: Mapped[str | None] = mapped_column(String(3))
    competition_country_code: Mapped[str | None] = mapped_column(String(3))
    photo_url: Mapped[str | None] = mapped_column(String(512))
    tracks: Mapped[list[str] | None] = mapped_column(JSON)
    addresses: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON)
    created_by: Mapped[str | None] = mapped_column(String(64))
    updated_by: Mapped[str | None] = mapped_column(String(64))


class MemberTrait(Document):
    """One trait category (education, skills, ...) of a member."""

    __tablename__ = "member_traits"
    __hash_key__ = "user_id"

    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    trait_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    category_name: Mapped[str | None] = mapped_column(String(128))
    traits: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    created_by: Mapped[str | None] = mapped_column(String(64))
    updated_by: Mapped[str | None] = mapped_column(String(64))


# Collection name -> document class, used to resolve collections by name
COLLECTIONS: dict[str, type[Document]] = {
    "Member": Member,
    "MemberTrait": MemberTrait,
}
