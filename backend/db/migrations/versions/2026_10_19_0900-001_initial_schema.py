"""Initial migration - Create routes, stops, students, bookings and driver assignments

Revision ID: 001
Revises: 
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create routes table
    op.create_table(
        'routes',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('area', sa.String(), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False, server_default='14'),
        sa.PrimaryKeyConstraint('id')
    )

    # Create stops table; each order is unique per route when set
    op.create_table(
        'stops',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('route_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('address', sa.String(), nullable=False, server_default=''),
        sa.Column('morning_order', sa.Integer(), nullable=True),
        sa.Column('afternoon_order', sa.Integer(), nullable=True),
        sa.Column('morning_pickup_time', sa.Time(), nullable=True),
        sa.Column('afternoon_dropoff_time', sa.Time(), nullable=True),
        sa.Column('friday_morning_pickup_time', sa.Time(), nullable=True),
        sa.Column('friday_afternoon_dropoff_time', sa.Time(), nullable=True),
        sa.Column('early_release_morning_pickup_time', sa.Time(), nullable=True),
        sa.Column('early_release_afternoon_dropoff_time', sa.Time(), nullable=True),
        sa.ForeignKeyConstraint(['route_id'], ['routes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('route_id', 'morning_order', name='uq_stop_morning_order'),
        sa.UniqueConstraint('route_id', 'afternoon_order', name='uq_stop_afternoon_order')
    )
    op.create_index('ix_stops_route_id', 'stops', ['route_id'])

    # Create students table
    op.create_table(
        'students',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('grade', sa.String(), nullable=False),
        sa.Column('parent_id', sa.String(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_students_parent_id', 'students', ['parent_id'])

    # Create bookings table
    op.create_table(
        'bookings',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('student_id', sa.String(), nullable=False),
        sa.Column('route_id', sa.String(), nullable=False),
        sa.Column('stop_id', sa.String(), nullable=False),
        sa.Column('service_date', sa.Date(), nullable=False),
        sa.Column('time_slot', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='confirmed'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['student_id'], ['students.id']),
        sa.ForeignKeyConstraint(['route_id'], ['routes.id']),
        sa.ForeignKeyConstraint(['stop_id'], ['stops.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_bookings_student_id', 'bookings', ['student_id'])
    op.create_index(
        'ix_bookings_slot', 'bookings',
        ['route_id', 'stop_id', 'service_date', 'time_slot', 'status']
    )

    # Create driver_assignments table
    op.create_table(
        'driver_assignments',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('driver_id', sa.String(), nullable=False),
        sa.Column('route_id', sa.String(), nullable=False),
        sa.Column('time_slot', sa.String(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(['route_id'], ['routes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_driver_assignments_driver_id', 'driver_assignments', ['driver_id'])


def downgrade() -> None:
    # Drop in reverse order
    op.drop_index('ix_driver_assignments_driver_id', table_name='driver_assignments')
    op.drop_table('driver_assignments')

    op.drop_index('ix_bookings_slot', table_name='bookings')
    op.drop_index('ix_bookings_student_id', table_name='bookings')
    op.drop_table('bookings')

    op.drop_index('ix_students_parent_id', table_name='students')
    op.drop_table('students')

    op.drop_index('ix_stops_route_id', table_name='stops')
    op.drop_table('stops')

    op.drop_table('routes')
