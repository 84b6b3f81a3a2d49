"""
Organization Model

An organization is the account a team works under. It has exactly one
owner; everyone else joins through a TeamMember row.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from teamdesk.database import Base
import uuid


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = Column(String(255), nullable=False)

    # The owner is never stored in team_members
    owner_id = Column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
        index=True
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    owner = relationship("User", back_populates="owned_organizations")
    workspaces = relationship("Workspace", back_populates="organization")
    team_members = relationship(
        "TeamMember",
        back_populates="organization",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index('idx_organization_name', 'name'),
    )

    def __repr__(self):
        return f"<Organization {self.name}>"
