from sqlalchemy import Column, DateTime, ForeignKey, String
from runfeed.db import Base
from runfeed.models.user import new_id


class Comment(Base):
    __tablename__ = "comments"

    id = Column(String(32), primary_key=True, default=new_id)
    activity_id = Column(String(32), ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True)

    user_id = Column(String(32), nullable=False)
    username = Column(String, nullable=False)
    text = Column(String, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False)
