from sqlalchemy import Column, String
from ..base import Base, TenantScoped

class Teacher(TenantScoped, Base):
    __tablename__ = "teachers"

    # Basic Information
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    email = Column(String(100), nullable=True, index=True)

    # Only active teachers appear in available-teacher suggestions
    status = Column(String(20), default="active", nullable=False)
