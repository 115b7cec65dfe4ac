"""Review comments on design files, optionally pinned to a spot on the page."""
from sqlalchemy import Column, Integer, Numeric, Text, Boolean, ForeignKey, DateTime, JSON, CheckConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class DesignComment(Base):
    """
    Append-only comment on a design file.

    The text and pin never change after creation; is_resolved (with its
    resolved_at/resolved_by stamps) is the only mutable state.
    Pin coordinates are percentages of the rendered viewport, stored with
    two decimals.
    """
    __tablename__ = "design_comments"

    id = Column(Integer, primary_key=True, index=True)
    design_file_id = Column(Integer, ForeignKey("design_files.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    comment = Column(Text, nullable=False)

    # Pin
    x_percent = Column(Numeric(5, 2, asdecimal=False))
    y_percent = Column(Numeric(5, 2, asdecimal=False))
    page_number = Column(Integer)
    zoom_level = Column(Numeric(6, 2, asdecimal=False))

    mentioned_user_ids = Column(JSON)
    # Task module is external; no FK
    linked_task_id = Column(Integer)

    is_resolved = Column(Boolean, nullable=False, default=False)
    resolved_at = Column(DateTime(timezone=True))
    resolved_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    design_file = relationship("DesignFile", back_populates="comments")
    author = relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        CheckConstraint(
            "x_percent IS NULL OR (x_percent >= 0 AND x_percent <= 100)",
            name="valid_comment_x_percent"
        ),
        CheckConstraint(
            "y_percent IS NULL OR (y_percent >= 0 AND y_percent <= 100)",
            name="valid_comment_y_percent"
        ),
        Index("idx_design_comments_file", "design_file_id"),
    )

    @property
    def is_pinned(self) -> bool:
        return self.x_percent is not None

    def __repr__(self):
        return f"<DesignComment {self.id} on design {self.design_file_id}>"
