from datetime import datetime
from enum import Enum as PyEnum, IntEnum

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, Enum, ForeignKey, Index, Integer, String, Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship, synonym

Base = declarative_base()


class Role(IntEnum):
    normal = 0
    admin = 1
    banned = 2


class Sex(IntEnum):
    male = 0
    female = 1
    unspecified = 2


class ContentType(IntEnum):
    experience = 1
    school_analysis = 2
    help_request = 3
    study_notes = 4


class ContentStatus(str, PyEnum):
    published = "published"
    draft = "draft"
    archived = "archived"


class TimestampMixin:
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class School(TimestampMixin, Base):
    __tablename__ = "schools"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    number = Column(Integer, nullable=False)
    introduce = Column(String(255), nullable=True)

    __table_args__ = (
        CheckConstraint("number > 0", name="ck_schools_number_positive"),
    )


class User(TimestampMixin, Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(45), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    nickname = Column(String(45), nullable=False)
    sex = Column(Integer, nullable=False, default=Sex.unspecified)
    role = Column(Integer, nullable=False, default=Role.normal)
    photo = Column(String(255), nullable=True)
    introduce = Column(String(255), nullable=True)
    last_login = Column(DateTime, nullable=True)
    original_school_id = Column(Integer, nullable=True)
    target_school_id = Column(
        Integer, ForeignKey("schools.id", ondelete="SET NULL", onupdate="CASCADE"), nullable=True
    )

    target_school = relationship("School")
    posts = relationship("Post", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    questions = relationship("Question", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("sex IN (0, 1, 2)", name="ck_users_sex"),
        CheckConstraint("role IN (0, 1, 2)", name="ck_users_role"),
    )


class Category(TimestampMixin, Base):
    __tablename__ = "categories"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    # Two levels by convention; nothing at the schema level caps the depth.
    parent_id = Column(Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=True, index=True)

    parent = relationship("Category", remote_side=[id], back_populates="children")
    children = relationship("Category", back_populates="parent", cascade="all, delete-orphan", passive_deletes=True, order_by="Category.id")


class SchoolCategory(TimestampMixin, Base):
    __tablename__ = "school_categories"
    id = Column(Integer, primary_key=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False)
    school_id = Column(Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    exam_frequency = Column(Integer, nullable=False, default=3)

    category = relationship("Category")
    school = relationship("School")

    __table_args__ = (
        UniqueConstraint("category_id", "school_id", name="uq_school_categories_pair"),
        CheckConstraint("exam_frequency BETWEEN 1 AND 5", name="ck_school_categories_frequency"),
    )


class ContentMixin(TimestampMixin):
    """Columns shared by posts and questions."""

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    video = Column(String(255), nullable=True)
    type = Column(Integer, nullable=False, default=ContentType.experience)
    likes_count = Column(Integer, nullable=False, default=0)
    views_count = Column(Integer, nullable=False, default=0)
    favorite_count = Column(Integer, nullable=False, default=0)
    is_recommended = Column(Boolean, nullable=False, default=False)
    status = Column(Enum(ContentStatus, name="content_status"), nullable=False, default=ContentStatus.published)


class Post(ContentMixin, Base):
    __tablename__ = "posts"
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    school_id = Column(Integer, ForeignKey("schools.id", ondelete="SET NULL"), nullable=True, index=True)
    parent_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=True, index=True)
    cover_image = Column(String(255), nullable=True)

    user = relationship("User", back_populates="posts")
    school = relationship("School")
    parent = relationship("Post", remote_side="Post.id", back_populates="children")
    children = relationship("Post", back_populates="parent", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("likes_count >= 0", name="ck_posts_likes_count"),
        CheckConstraint("favorite_count >= 0", name="ck_posts_favorite_count"),
        CheckConstraint("views_count >= 0", name="ck_posts_views_count"),
    )

Index("idx_posts_listing", Post.status, Post.type, Post.id.desc())


class Question(ContentMixin, Base):
    __tablename__ = "questions"
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    parent_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=True, index=True)
    difficulty = Column(Integer, nullable=True)

    user = relationship("User", back_populates="questions")
    category = relationship("Category")
    parent = relationship("Question", remote_side="Question.id", back_populates="children")
    children = relationship("Question", back_populates="parent", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("likes_count >= 0", name="ck_questions_likes_count"),
        CheckConstraint("favorite_count >= 0", name="ck_questions_favorite_count"),
        CheckConstraint("views_count >= 0", name="ck_questions_views_count"),
    )

Index("idx_questions_category_created", Question.category_id, Question.created_at)


class PostLike(TimestampMixin, Base):
    __tablename__ = "post_likes"
    id = Column(Integer, primary_key=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content_id = synonym("post_id")

    __table_args__ = (UniqueConstraint("post_id", "user_id", name="uq_post_likes_pair"),)


class PostFavorite(TimestampMixin, Base):
    __tablename__ = "post_favorites"
    id = Column(Integer, primary_key=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content_id = synonym("post_id")

    __table_args__ = (UniqueConstraint("post_id", "user_id", name="uq_post_favorites_pair"),)


class QuestionLike(TimestampMixin, Base):
    __tablename__ = "question_likes"
    id = Column(Integer, primary_key=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content_id = synonym("question_id")

    __table_args__ = (UniqueConstraint("question_id", "user_id", name="uq_question_likes_pair"),)


class QuestionFavorite(TimestampMixin, Base):
    __tablename__ = "question_favorites"
    id = Column(Integer, primary_key=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content_id = synonym("question_id")

    __table_args__ = (UniqueConstraint("question_id", "user_id", name="uq_question_favorites_pair"),)
