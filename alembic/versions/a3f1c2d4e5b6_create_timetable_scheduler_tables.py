"""create timetable scheduler tables

Revision ID: a3f1c2d4e5b6
Revises:
Create Date: 2026-10-17 09:12:40.518233

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'a3f1c2d4e5b6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_ENTRY = sa.text("is_active AND NOT is_deleted")

TENANT_TABLES = (
    'academic_years', 'classes', 'subjects', 'rooms', 'teachers',
    'time_slots', 'timetable_entries', 'teacher_availability', 'timetable_audit_logs',
)


def _base_columns():
    return [
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
    ]


def _tenant_column():
    return sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id'), nullable=False)


def _create(table, *columns, **kw):
    op.create_table(table, *_base_columns(), *columns, **kw)
    op.create_index(f'ix_{table}_created_at', table, ['created_at'])
    op.create_index(f'ix_{table}_is_deleted', table, ['is_deleted'])
    if table != 'tenants':
        op.create_index(f'ix_{table}_tenant_id', table, ['tenant_id'])


def upgrade() -> None:
    _create(
        'tenants',
        sa.Column('school_code', sa.String(10), nullable=False, unique=True),
        sa.Column('school_name', sa.String(200), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    _create(
        'academic_years',
        _tenant_column(),
        sa.Column('name', sa.String(20), nullable=False),
        sa.Column('start_date', sa.Date()),
        sa.Column('end_date', sa.Date()),
        sa.Column('is_current', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint('tenant_id', 'name', name='uq_academic_year_name'),
    )
    _create(
        'classes',
        _tenant_column(),
        sa.Column('class_name', sa.String(50), nullable=False),
        sa.Column('section', sa.String(10)),
        sa.Column('grade_level', sa.Integer()),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
    )
    _create(
        'subjects',
        _tenant_column(),
        sa.Column('subject_name', sa.String(100), nullable=False),
        sa.Column('subject_code', sa.String(20)),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
    )
    _create(
        'rooms',
        _tenant_column(),
        sa.Column('room_name', sa.String(50), nullable=False),
        sa.Column('building', sa.String(50)),
        sa.Column('floor', sa.String(10)),
        sa.Column('capacity', sa.Integer()),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
    )
    _create(
        'teachers',
        _tenant_column(),
        sa.Column('first_name', sa.String(50)),
        sa.Column('last_name', sa.String(50)),
        sa.Column('email', sa.String(100)),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
    )
    _create(
        'time_slots',
        _tenant_column(),
        sa.Column('day_of_week', sa.SmallInteger(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('label', sa.String(50)),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_by', postgresql.UUID(as_uuid=True)),
        sa.Column('updated_by', postgresql.UUID(as_uuid=True)),
        sa.CheckConstraint('start_time < end_time', name='ck_time_slot_bounds'),
        sa.CheckConstraint('day_of_week BETWEEN 1 AND 7', name='ck_time_slot_day'),
    )
    op.create_index('ix_time_slots_tenant_day', 'time_slots', ['tenant_id', 'day_of_week'])

    _create(
        'timetable_entries',
        _tenant_column(),
        sa.Column('time_slot_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('time_slots.id'), nullable=False),
        sa.Column('room_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('rooms.id')),
        sa.Column('class_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('classes.id'), nullable=False),
        sa.Column('subject_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('subjects.id')),
        sa.Column('teacher_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('teachers.id')),
        sa.Column('academic_year_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('academic_years.id'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_by', postgresql.UUID(as_uuid=True)),
        sa.Column('updated_by', postgresql.UUID(as_uuid=True)),
    )
    for column in ('time_slot_id', 'room_id', 'class_id', 'teacher_id', 'academic_year_id'):
        op.create_index(f'ix_timetable_entries_{column}', 'timetable_entries', [column])

    # One live booking per room, teacher and class in a slot
    for name, column in (
        ('uq_timetable_entry_room', 'room_id'),
        ('uq_timetable_entry_teacher', 'teacher_id'),
        ('uq_timetable_entry_class', 'class_id'),
    ):
        op.create_index(
            name,
            'timetable_entries',
            ['tenant_id', 'academic_year_id', 'time_slot_id', column],
            unique=True,
            postgresql_where=ACTIVE_ENTRY,
            sqlite_where=ACTIVE_ENTRY,
        )

    _create(
        'teacher_availability',
        _tenant_column(),
        sa.Column('teacher_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('teachers.id'), nullable=False),
        sa.Column('time_slot_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('time_slots.id'), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.UniqueConstraint('tenant_id', 'teacher_id', 'time_slot_id', name='uq_teacher_availability_slot'),
    )
    op.create_index('ix_teacher_availability_teacher_id', 'teacher_availability', ['teacher_id'])
    op.create_index('ix_teacher_availability_time_slot_id', 'teacher_availability', ['time_slot_id'])

    _create(
        'timetable_audit_logs',
        _tenant_column(),
        sa.Column('action_type', sa.String(50), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('performed_by', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('change_description', sa.Text()),
        sa.Column('old_values', sa.JSON()),
        sa.Column('new_values', sa.JSON()),
    )
    op.create_index('ix_timetable_audit_logs_entity_id', 'timetable_audit_logs', ['entity_id'])

    if op.get_bind().dialect.name == 'postgresql':
        for table in TENANT_TABLES:
            op.execute(f'ALTER TABLE {table} ENABLE ROW LEVEL SECURITY')
            op.execute(
                f"CREATE POLICY {table}_tenant_isolation ON {table} "
                f"USING (tenant_id::text = current_setting('app.current_tenant_id', true))"
            )


def downgrade() -> None:
    if op.get_bind().dialect.name == 'postgresql':
        for table in TENANT_TABLES:
            op.execute(f'DROP POLICY IF EXISTS {table}_tenant_isolation ON {table}')

    for table in reversed(('tenants',) + TENANT_TABLES):
        op.drop_table(table)
