from datetime import datetime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import Integer, String, Text, DateTime, func, UniqueConstraint, Index

class Base(DeclarativeBase):
    pass

class Chatroom(Base):
    __tablename__ = "chatrooms"
    room_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

class Message(Base):
    __tablename__ = "messages"
    # seq gives the chronological order; message_id is the client-visible id
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    room_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    message_id: Mapped[str] = mapped_column(String(128), nullable=False)
    user: Mapped[str] = mapped_column(String(256), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("room_id", "message_id", name="uq_messages_room_message"),
        Index("ix_messages_room_user", "room_id", "user"),
    )

class AppliedRename(Base):
    __tablename__ = "renames_applied"
    room_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    rename_id: Mapped[str] = mapped_column(String(128), primary_key=True)

class RenameState(Base):
    __tablename__ = "rename_state"
    room_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    last_username: Mapped[str] = mapped_column(String(256), nullable=False)

class UserRename(Base):
    __tablename__ = "user_renames"
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    old: Mapped[str] = mapped_column(String(256), nullable=False)
    new: Mapped[str] = mapped_column(String(256), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
