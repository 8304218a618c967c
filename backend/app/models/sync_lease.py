"""SyncLease model granting one sync invocation exclusive write access."""

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class SyncLease(Base):
    """Time-bounded lock row; an expired lease may be taken over by anyone."""

    __tablename__ = "sync_leases"

    kind: Mapped[str] = mapped_column(String(64), primary_key=True)
    holder: Mapped[str] = mapped_column(String(64), nullable=False)
    acquired_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<SyncLease {self.kind}: {self.holder} until {self.expires_at}>"
