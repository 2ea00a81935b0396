import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional
from sqlalchemy import JSON, String, DateTime, Text, Uuid, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base
from app.enums import IntegrationStatus, AuthType

if TYPE_CHECKING:
    from app.models.user_integration import UserIntegration


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Integration(Base):
    __tablename__ = "integrations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    icon: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[IntegrationStatus] = mapped_column(
        SAEnum(IntegrationStatus, name="integration_status", native_enum=False),
        default=IntegrationStatus.AVAILABLE,
        nullable=False,
    )
    auth_type: Mapped[AuthType] = mapped_column(
        SAEnum(AuthType, name="auth_type", native_enum=False), nullable=False
    )
    config_schema: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON(none_as_null=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user_integrations: Mapped[list["UserIntegration"]] = relationship(
        back_populates="integration",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
