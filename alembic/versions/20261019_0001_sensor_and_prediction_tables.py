"""Initial schema - sensor_data and prediction_data tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create sensor_data table (append-only live readings)
    op.create_table(
        'sensor_data',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('temperature', sa.Float(), nullable=False),
        sa.Column('air_humidity', sa.Float(), nullable=False),
        sa.Column('soil_humidity', sa.Float(), nullable=False),
        sa.Column('co2_level', sa.Float(), nullable=False),
        sa.Column('light_lux', sa.Float(), nullable=False),
        sa.Column('status', sa.String(length=10), nullable=False, server_default='Normal'),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_sensor_data_timestamp', 'sensor_data', ['timestamp'], unique=False)

    # Create prediction_data table (future rows replaced per forecast batch)
    op.create_table(
        'prediction_data',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('predicted_temp', sa.Float(), nullable=False),
        sa.Column('predicted_air_humidity', sa.Float(), nullable=False),
        sa.Column('predicted_soil_humidity', sa.Float(), nullable=False),
        sa.Column('predicted_co2_level', sa.Float(), nullable=True),
        sa.Column('predicted_light_lux', sa.Float(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_prediction_data_timestamp', 'prediction_data', ['timestamp'], unique=False)
    op.create_index('ix_prediction_data_created_at', 'prediction_data', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_prediction_data_created_at', table_name='prediction_data')
    op.drop_index('ix_prediction_data_timestamp', table_name='prediction_data')
    op.drop_table('prediction_data')
    op.drop_index('ix_sensor_data_timestamp', table_name='sensor_data')
    op.drop_table('sensor_data')
