from sqlalchemy import Column, String, DateTime, Integer, Text, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime

from app.core.database import Base
from app.core.types import GUID, IdList, generate_uuid


# Legacy encoding: a comment starting with this marker is a collaboration request
COLLAB_REQUEST_MARKER = "[COLLAB REQUEST"


def is_collab_marker(content: str) -> bool:
    return (content or "").strip().upper().startswith(COLLAB_REQUEST_MARKER)


class Project(Base):
    """Showcased project"""
    __tablename__ = "projects"

    __table_args__ = (
        Index('ix_projects_author_id', 'author_id'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    sector = Column(String(50), nullable=True)

    author_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    author_name = Column(String(255), nullable=True)

    # User ids; kept as sets by the code that writes them
    likes = Column(IdList, default=list, nullable=False)
    follows = Column(IdList, default=list, nullable=False)
    collaborator_ids = Column(IdList, default=list, nullable=False)
    collaborator_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    author = relationship("User", back_populates="projects")
    comments = relationship(
        "ProjectComment",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="ProjectComment.created_at",
    )

    def __repr__(self):
        return f"<Project {self.title}>"


class ProjectComment(Base):
    """Comment left on a project. Older rows may carry a collaboration marker."""
    __tablename__ = "project_comments"

    __table_args__ = (
        Index('ix_project_comments_project_id', 'project_id'),
        Index('ix_project_comments_user_id', 'user_id'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    comment_id = Column(String(64), unique=True, nullable=False, default=generate_uuid)
    project_id = Column(GUID, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(GUID, nullable=False)
    user_name = Column(String(255), nullable=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    project = relationship("Project", back_populates="comments")

    @property
    def is_collab_request(self) -> bool:
        return is_collab_marker(self.content)

    def __repr__(self):
        return f"<ProjectComment {self.comment_id} on {self.project_id}>"
