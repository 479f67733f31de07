from __future__ import annotations

from sqlalchemy import JSON, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from thrift_search.db.base import Base


class Listing(Base):
    __tablename__ = "listings"

    pk: Mapped[int] = mapped_column("id", primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    # Rows imported from external dumps may be incomplete; the ranker drops them.
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    location: Mapped[str | None] = mapped_column(String(256), nullable=True)
    condition: Mapped[str | None] = mapped_column(String(64), nullable=True)
    category: Mapped[str | None] = mapped_column(String(128), nullable=True)
    sub_category: Mapped[str | None] = mapped_column(String(128), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    brand: Mapped[str | None] = mapped_column(String(128), nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    def to_record(self) -> dict[str, object]:
        return {
            "id": self.external_id,
            "name": self.name,
            "price": self.price,
            "location": self.location,
            "condition": self.condition,
            "category": self.category,
            "subCategory": self.sub_category,
            "description": self.description,
            "brand": self.brand,
            "tags": list(self.tags or []),
            "imageUrl": self.image_url,
        }
