"""Item record: an item owned by an actor."""

from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from charsheet.documents import ItemDocument

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .actor import ActorRecord


class ItemRecord(Base, TimestampMixin):
    """Stored item document."""

    __tablename__ = "items"

    id: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
        comment="Unique item identifier",
    )

    actor_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("actors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Foreign key to the owning actor",
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="",
        server_default="",
        comment="Display name of the item",
    )

    item_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Item type (class, equipment, weapon ...)",
    )

    sort: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        comment="Stable ordering key among the actor's items",
    )

    system: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        server_default="{}",
        comment="Item system data",
    )

    actor: Mapped["ActorRecord"] = relationship(
        "ActorRecord",
        back_populates="items",
    )

    @classmethod
    def from_document(cls, item: ItemDocument) -> "ItemRecord":
        """Build a record from an item document."""
        return cls(
            id=item.id,
            name=item.name,
            item_type=item.type.value,
            sort=item.sort,
            system=item.system.model_dump(mode="json"),
        )

    def to_document(self) -> ItemDocument:
        """Load the stored data into an item document."""
        return ItemDocument.model_validate(
            {
                "id": self.id,
                "name": self.name,
                "type": self.item_type,
                "sort": self.sort,
                "system": self.system or {},
            }
        )

    def __repr__(self) -> str:
        """String representation of ItemRecord."""
        return f"<ItemRecord(id='{self.id}', name='{self.name}', type={self.item_type})>"
