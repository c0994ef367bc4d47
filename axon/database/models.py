"""
ORM models for users, training modules, sessions, progress and content usage.
"""

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, String, Text,
    UniqueConstraint
)

from axon.common.utils import utc_now
from axon.database.base import JSONType, ModelBase, generate_id


class User(ModelBase):
    """
    Account row owned by the external session provider.

    The application only needs the id; rows are created on first use.
    """
    __tablename__ = 'users'

    id = Column(String(255), primary_key=True)
    email = Column(String(255), nullable=True, unique=True)
    name = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    def __repr__(self):
        return f"<User(id='{self.id}')>"


class TrainingModule(ModelBase):
    """Catalog entry for a training exercise type, keyed by slug."""
    __tablename__ = 'training_modules'

    id = Column(String(36), primary_key=True, default=generate_id)
    slug = Column(String(100), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(50), nullable=False)
    configuration = Column(JSONType, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    def __repr__(self):
        return f"<TrainingModule(slug='{self.slug}', category='{self.category}')>"


class TrainingSession(ModelBase):
    """One completed exercise attempt. Never updated after creation."""
    __tablename__ = 'training_sessions'

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(255), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    module_id = Column(String(36), ForeignKey('training_modules.id', ondelete='RESTRICT'), nullable=False)
    configuration = Column(JSONType, nullable=False)
    results = Column(JSONType, nullable=False)
    score = Column(Float, nullable=False)
    # Null when the results carried no correct/incorrect counts
    accuracy = Column(Float, nullable=True)
    duration = Column(Integer, nullable=False)
    performance_level = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default='completed')
    created_at = Column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        Index('idx_training_sessions_user_created', 'user_id', 'created_at'),
    )

    def __repr__(self):
        return (f"<TrainingSession(id='{self.id}', user_id='{self.user_id}', "
                f"score={self.score}, level='{self.performance_level}')>")


class UserProgress(ModelBase):
    """Running statistics for one user on one training module."""
    __tablename__ = 'user_progress'

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(255), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    module_id = Column(String(36), ForeignKey('training_modules.id', ondelete='RESTRICT'), nullable=False)
    total_sessions = Column(Integer, nullable=False, default=0)
    average_score = Column(Float, nullable=False, default=0.0)
    best_score = Column(Float, nullable=False, default=0.0)
    current_streak = Column(Integer, nullable=False, default=0)
    longest_streak = Column(Integer, nullable=False, default=0)
    current_difficulty = Column(String(20), nullable=True)
    last_session_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'module_id', name='uq_user_progress_user_module'),
    )

    def __repr__(self):
        return (f"<UserProgress(user_id='{self.user_id}', module_id='{self.module_id}', "
                f"total_sessions={self.total_sessions}, average={self.average_score})>")


class ContentUsage(ModelBase):
    """Items served to a user in one content request. Append-only."""
    __tablename__ = 'content_usage'

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(255), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    content_type = Column(String(50), nullable=False)
    items = Column(JSONType, nullable=False)
    used_at = Column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        Index('idx_content_usage_user_type_used', 'user_id', 'content_type', 'used_at'),
    )

    def __repr__(self):
        return f"<ContentUsage(user_id='{self.user_id}', type='{self.content_type}', used_at={self.used_at})>"
