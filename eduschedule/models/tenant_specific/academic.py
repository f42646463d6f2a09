# eduschedule/models/tenant_specific/academic.py
"""Reference data owned by the academic module.

Only the columns the scheduler joins for display are mapped here.
"""
from sqlalchemy import Column, String, Integer, Boolean, Date, UniqueConstraint

from ..base import Base, TenantScoped


class AcademicYear(TenantScoped, Base):
    __tablename__ = "academic_years"

    name = Column(String(20), nullable=False)  # "2024-25"
    start_date = Column(Date)
    end_date = Column(Date)
    is_current = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_academic_year_name"),
    )


class ClassModel(TenantScoped, Base):
    __tablename__ = "classes"

    class_name = Column(String(50), nullable=False, index=True)
    section = Column(String(10))
    grade_level = Column(Integer)
    is_active = Column(Boolean, default=True)


class Subject(TenantScoped, Base):
    __tablename__ = "subjects"

    subject_name = Column(String(100), nullable=False)
    subject_code = Column(String(20))
    is_active = Column(Boolean, default=True)


class Room(TenantScoped, Base):
    __tablename__ = "rooms"

    room_name = Column(String(50), nullable=False)
    building = Column(String(50))
    floor = Column(String(10))
    capacity = Column(Integer)
    is_active = Column(Boolean, default=True)
