"""
Workspace Model

Workspaces belong to an owner and, once onboarding has created one,
to the owner's organization. The owner's oldest workspace is treated
as the primary workspace.
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from teamdesk.database import Base
import uuid


class Workspace(Base):
    __tablename__ = "workspaces"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = Column(String(100), nullable=False)

    owner_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    organization_id = Column(
        String(36),
        ForeignKey("organizations.id"),
        nullable=True,
        index=True
    )
    created_by_id = Column(String(36), ForeignKey("users.id"), nullable=True)

    white_label_enabled = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    owner = relationship("User", back_populates="owned_workspaces", foreign_keys=[owner_id])
    organization = relationship("Organization", back_populates="workspaces")

    __table_args__ = (
        # Names are unique per owner (checked in WorkspaceService too)
        Index('idx_workspace_owner_name', 'owner_id', 'name', unique=True),
    )

    def __repr__(self):
        return f"<Workspace {self.name} (owner={self.owner_id})>"
