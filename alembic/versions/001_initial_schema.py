# alembic/versions/001_initial_schema.py
"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

from stockpile.core.constants import ROLE_NAMES, FieldType, SubscriptionStatus
from stockpile.db.triggers import TRIGGERS

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def timestamps():
    return [
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
    ]


def organization_column():
    return sa.Column(
        'organization_id', sa.Integer,
        sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True,
    )


def upgrade() -> None:
    # Lookup tables
    roles = op.create_table(
        'roles',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(50), nullable=False, unique=True),
    )
    subscription_statuses = op.create_table(
        'subscription_statuses',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(50), nullable=False, unique=True),
    )
    field_types = op.create_table(
        'field_types',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(50), nullable=False, unique=True),
    )
    op.bulk_insert(roles, [{'id': int(role), 'name': name} for role, name in ROLE_NAMES.items()])
    op.bulk_insert(subscription_statuses, [{'id': int(status), 'name': status.name} for status in SubscriptionStatus])
    op.bulk_insert(field_types, [{'id': int(field_type), 'name': field_type.name.lower()} for field_type in FieldType])

    # Tenants and accounts
    op.create_table(
        'organizations',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('billing_customer', sa.String(255), unique=True),
        *timestamps(),
    )
    op.create_table(
        'users',
        sa.Column('id', sa.Integer, primary_key=True),
        organization_column(),
        sa.Column('role_id', sa.Integer, sa.ForeignKey('roles.id'), nullable=False),
        sa.Column('first_name', sa.String(255), nullable=False),
        sa.Column('last_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), unique=True),
        sa.Column('password', sa.String(255)),
        sa.Column('archived', sa.DateTime),
        *timestamps(),
    )
    op.create_table(
        'refresh_tokens',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('token', sa.String(255), nullable=False),
        *timestamps(),
    )
    op.create_table(
        'subscriptions',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column(
            'organization_id', sa.Integer,
            sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, unique=True,
        ),
        sa.Column('billing_customer', sa.String(255), unique=True),
        sa.Column('valid', sa.Boolean, nullable=False),
        sa.Column('status_id', sa.Integer, sa.ForeignKey('subscription_statuses.id'), nullable=False),
        sa.Column('status_until', sa.DateTime),
        *timestamps(),
    )

    # Catalog
    for name in ('brands', 'categories', 'kits'):
        op.create_table(
            name,
            sa.Column('id', sa.Integer, primary_key=True),
            organization_column(),
            sa.Column('name', sa.String(255), nullable=False),
            *timestamps(),
            sa.UniqueConstraint('organization_id', 'name'),
        )
    op.create_table(
        'models',
        sa.Column('id', sa.Integer, primary_key=True),
        organization_column(),
        sa.Column('brand_id', sa.Integer, sa.ForeignKey('brands.id'), nullable=False, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        *timestamps(),
        sa.UniqueConstraint('organization_id', 'brand_id', 'name'),
    )
    op.create_table(
        'kit_models',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('kit_id', sa.Integer, sa.ForeignKey('kits.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('model_id', sa.Integer, sa.ForeignKey('models.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.UniqueConstraint('kit_id', 'model_id'),
    )
    op.create_table(
        'items',
        sa.Column('id', sa.Integer, primary_key=True),
        organization_column(),
        sa.Column('barcode', sa.String(255), nullable=False, unique=True),
        sa.Column('model_id', sa.Integer, sa.ForeignKey('models.id'), nullable=False, index=True),
        sa.Column('category_id', sa.Integer, sa.ForeignKey('categories.id', ondelete='SET NULL'), index=True),
        sa.Column('notes', sa.Text),
        *timestamps(),
    )

    # Custom fields
    op.create_table(
        'custom_fields',
        sa.Column('id', sa.Integer, primary_key=True),
        organization_column(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('field_type_id', sa.Integer, sa.ForeignKey('field_types.id'), nullable=False),
        sa.Column('show_timestamp', sa.Boolean, nullable=False),
        *timestamps(),
        sa.UniqueConstraint('organization_id', 'name'),
    )
    op.create_table(
        'custom_field_categories',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column(
            'custom_field_id', sa.Integer,
            sa.ForeignKey('custom_fields.id', ondelete='CASCADE'), nullable=False, index=True,
        ),
        sa.Column(
            'category_id', sa.Integer,
            sa.ForeignKey('categories.id', ondelete='CASCADE'), nullable=False, index=True,
        ),
        sa.UniqueConstraint('custom_field_id', 'category_id'),
    )
    op.create_table(
        'item_custom_fields',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column(
            'barcode', sa.String(255),
            sa.ForeignKey('items.barcode', ondelete='CASCADE', onupdate='CASCADE'), nullable=False, index=True,
        ),
        sa.Column(
            'custom_field_id', sa.Integer,
            sa.ForeignKey('custom_fields.id', ondelete='CASCADE'), nullable=False, index=True,
        ),
        sa.Column('value', sa.Text),
        sa.Column('updated_at', sa.DateTime, nullable=False),
        sa.UniqueConstraint('barcode', 'custom_field_id'),
    )

    # Rentals
    op.create_table(
        'external_renters',
        sa.Column('id', sa.Integer, primary_key=True),
        organization_column(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('phone', sa.String(50)),
        *timestamps(),
    )
    op.create_table(
        'rentals',
        sa.Column('id', sa.Integer, primary_key=True),
        organization_column(),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id', ondelete='SET NULL'), index=True),
        sa.Column(
            'external_renter_id', sa.Integer,
            sa.ForeignKey('external_renters.id', ondelete='SET NULL'), index=True,
        ),
        sa.Column('start_date', sa.Date, nullable=False),
        sa.Column('end_date', sa.Date, nullable=False),
        sa.Column('notes', sa.Text),
        sa.Column('is_reservation', sa.Boolean, nullable=False),
        *timestamps(),
        sa.CheckConstraint('end_date >= start_date', name='ck_rentals_dates'),
    )
    op.create_table(
        'rental_items',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('rental_id', sa.Integer, sa.ForeignKey('rentals.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column(
            'barcode', sa.String(255),
            sa.ForeignKey('items.barcode', ondelete='CASCADE', onupdate='CASCADE'), nullable=False, index=True,
        ),
        sa.Column('returned', sa.DateTime),
        *timestamps(),
        sa.UniqueConstraint('rental_id', 'barcode'),
    )

    # Overlap and archive triggers
    dialect = op.get_bind().dialect.name
    for table_name in ('users', 'rental_items'):
        for statement in TRIGGERS.get(dialect, {}).get(table_name, []):
            op.execute(statement)


def downgrade() -> None:
    dialect = op.get_bind().dialect.name
    if dialect == 'postgresql':
        for function in ('rental_items_check_overlap', 'rentals_check_overlap', 'users_archive'):
            op.execute(f'DROP FUNCTION IF EXISTS {function}() CASCADE')

    for table_name in (
        'rental_items',
        'rentals',
        'external_renters',
        'item_custom_fields',
        'custom_field_categories',
        'custom_fields',
        'items',
        'kit_models',
        'models',
        'kits',
        'categories',
        'brands',
        'subscriptions',
        'refresh_tokens',
        'users',
        'organizations',
        'field_types',
        'subscription_statuses',
        'roles',
    ):
        op.drop_table(table_name)
