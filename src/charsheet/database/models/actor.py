"""Actor record: a character, NPC or vehicle with its system data stored as JSON."""

from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from charsheet.documents import ActorDocument

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .item import ItemRecord


class ActorRecord(Base, TimestampMixin):
    """Stored actor document."""

    __tablename__ = "actors"

    id: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
        comment="Unique actor identifier",
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="",
        server_default="",
        index=True,
        comment="Display name of the actor",
    )

    actor_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="character",
        server_default="character",
        comment="Actor subtype (character, npc, vehicle)",
    )

    # Authored and derived system data, see ActorSystem
    system: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        server_default="{}",
        comment="Actor system data",
    )

    # Feature flags and transformation state, see ActorFlags
    flags: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        server_default="{}",
        comment="Actor feature flags",
    )

    items: Mapped[list["ItemRecord"]] = relationship(
        "ItemRecord",
        back_populates="actor",
        cascade="all, delete-orphan",
        order_by="ItemRecord.sort",
        lazy="selectin",
    )

    @classmethod
    def from_document(cls, actor: ActorDocument) -> "ActorRecord":
        """Build a record (with its item records) from an actor document."""
        from .item import ItemRecord

        return cls(
            id=actor.id,
            name=actor.name,
            actor_type=actor.type.value,
            system=actor.system.model_dump(mode="json"),
            flags=actor.flags.model_dump(mode="json"),
            items=[ItemRecord.from_document(item) for item in actor.items],
        )

    def to_document(self) -> ActorDocument:
        """Load the stored data into an actor document."""
        return ActorDocument.model_validate(
            {
                "id": self.id,
                "name": self.name,
                "type": self.actor_type,
                "system": self.system or {},
                "flags": self.flags or {},
                "items": [item.to_document() for item in self.items],
            }
        )

    def __repr__(self) -> str:
        """String representation of ActorRecord."""
        return f"<ActorRecord(id='{self.id}', name='{self.name}', type={self.actor_type})>"
