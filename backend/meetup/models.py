"""SQLAlchemy models for meetup registrations."""

from sqlalchemy import Boolean, Column, Integer, Text, text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql.expression import false

Base = declarative_base()


class Registration(Base):
    """
    One person who registered interest in the meetup.

    is_speaker, topic and profile_pic were added after the first release;
    rows older than them hold 0 / NULL.
    """

    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(Text, nullable=False, server_default=text("CURRENT_TIMESTAMP"))
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False)
    is_speaker = Column(Boolean, nullable=False, default=False, server_default=false())
    topic = Column(Text, nullable=True)
    profile_pic = Column(Text, nullable=True)
