"""
Post table for the SQL post store.
"""
from sqlalchemy import BigInteger, CheckConstraint, Column, Float, Integer, String, Text
from ..database import Base


class PostRow(Base):
    __tablename__ = "posts"
    __table_args__ = (
        CheckConstraint("likes >= 0", name="ck_posts_likes_non_negative"),
    )

    id = Column(String(64), primary_key=True)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    text = Column(Text, nullable=False, default="")
    mood = Column(Text, nullable=True)
    timestamp = Column(BigInteger, nullable=False, index=True)  # ms since epoch
    likes = Column(Integer, nullable=False, default=0, server_default="0")
