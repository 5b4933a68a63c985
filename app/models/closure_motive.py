"""Closure motive catalog model."""
from sqlalchemy import Column, Integer, String

from app.database import Base


class ClosureMotive(Base):
    """Coded reasons a visit ends, shown in the manual override selector."""

    __tablename__ = "closure_motives"

    code = Column(Integer, primary_key=True)
    label = Column(String(255), nullable=False)

    def __repr__(self):
        return f"<ClosureMotive {self.code} - {self.label}>"
