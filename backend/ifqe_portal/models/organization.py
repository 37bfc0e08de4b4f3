from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime

from ifqe_portal.core.database import Base
from ifqe_portal.core.types import GUID, generate_uuid


class School(Base):
    """School grouping one or more departments"""
    __tablename__ = "schools"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), unique=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    departments = relationship("Department", back_populates="school", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<School {self.name}>"


class Department(Base):
    """Academic department that submits evidence"""
    __tablename__ = "departments"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    school_id = Column(GUID, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    school = relationship("School", back_populates="departments")

    def __repr__(self):
        return f"<Department {self.name}>"
