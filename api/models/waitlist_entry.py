from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime, timezone
from database import Base


class WaitlistEntry(Base):
    __tablename__ = "waitlist_entries"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    # Uniqueness lives in the database so concurrent signups cannot race
    email = Column(String(320), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    def __repr__(self):
        return f"<WaitlistEntry id={self.id} email={self.email}>"
