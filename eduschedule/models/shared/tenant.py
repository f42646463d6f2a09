"""Tenant (School) model definition."""
from sqlalchemy import Column, String, Boolean
from ..base import Base

class Tenant(Base):
    __tablename__ = "tenants"

    school_code = Column(String(10), unique=True, nullable=False, index=True)
    school_name = Column(String(200), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
