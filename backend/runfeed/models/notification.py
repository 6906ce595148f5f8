from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, false
from runfeed.db import Base
from runfeed.models.user import new_id


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(32), primary_key=True, default=new_id)
    # Recipient
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    from_user_id = Column(String(32), nullable=False)
    from_username = Column(String, nullable=False)
    type = Column(String(20), nullable=False)  # like, comment
    activity_id = Column(String(32), nullable=False)
    is_read = Column(Boolean, nullable=False, default=False, server_default=false())

    created_at = Column(DateTime(timezone=True), nullable=False)
