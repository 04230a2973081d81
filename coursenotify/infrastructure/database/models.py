# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models for the learning platform tables CourseNotify reads.

The platform owns these tables; the models mirror the columns the
notification engine needs. Table names follow the platform schema,
including its hyphenated names.

Membership and management are many-to-many link tables. A course run is
bound to exactly one group through the run's group_id, which is the
pivot every student-facing notification is scoped by.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for all platform models."""


class User(Base):
    """A platform user (student, facilitator or manager)."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str | None] = mapped_column(String(255))
    email: Mapped[str | None] = mapped_column(String(255))


class Group(Base):
    """A membership container for students."""

    __tablename__ = "groups"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str | None] = mapped_column(String(255))


class GroupMember(Base):
    """Membership of a user in a group with a role."""

    __tablename__ = "group-members"
    __table_args__ = (UniqueConstraint("group_id", "user_id", name="uq_group_member"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group_id: Mapped[str] = mapped_column(ForeignKey("groups.id"), index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    role: Mapped[str] = mapped_column(String(32), default="student")


class Course(Base):
    """A course."""

    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str | None] = mapped_column(String(255))


class CourseManager(Base):
    """A user entitled to course-level operational notifications."""

    __tablename__ = "course_managers"
    __table_args__ = (UniqueConstraint("course_id", "user_id", name="uq_course_manager"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_id: Mapped[str] = mapped_column(ForeignKey("courses.id"), index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)


class CourseRun(Base):
    """One offering of a course, bound to exactly one group."""

    __tablename__ = "course-runs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str | None] = mapped_column(String(255))
    course_id: Mapped[str] = mapped_column(ForeignKey("courses.id"), index=True)
    group_id: Mapped[str | None] = mapped_column(ForeignKey("groups.id"), index=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class Activity(Base):
    """A quiz, assignment, exam or other learning activity."""

    __tablename__ = "activities"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type: Mapped[str] = mapped_column(String(32))
    # JSON document carrying the title; parsed by the context resolver
    payload: Mapped[str | None] = mapped_column(Text)


class CourseActivity(Base):
    """Join entity binding an activity to a course."""

    __tablename__ = "course-activities"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    activity_id: Mapped[str] = mapped_column(ForeignKey("activities.id"), index=True)
    course_id: Mapped[str] = mapped_column(ForeignKey("courses.id"), index=True)
    order: Mapped[int] = mapped_column(Integer, default=0)


class AssignmentSubmission(Base):
    """An assignment submission; existence means submitted."""

    __tablename__ = "assignment_submissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    activity_id: Mapped[str] = mapped_column(ForeignKey("activities.id"), index=True)
    course_run_id: Mapped[str] = mapped_column(ForeignKey("course-runs.id"), index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class QuizAttempt(Base):
    """A quiz attempt; completed once completed_at is set."""

    __tablename__ = "quiz-attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    activity_id: Mapped[str] = mapped_column(ForeignKey("activities.id"), index=True)
    course_run_id: Mapped[str] = mapped_column(ForeignKey("course-runs.id"), index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class ExamSubmission(Base):
    """An exam submission; submitted once submitted_at is set."""

    __tablename__ = "exam_submissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    activity_id: Mapped[str] = mapped_column(ForeignKey("activities.id"), index=True)
    course_run_id: Mapped[str] = mapped_column(ForeignKey("course-runs.id"), index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class PushSubscription(Base):
    """A registered push subscription of a user's device or browser."""

    __tablename__ = "notification_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    subscription: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
