"""initial compliance schema

Revision ID: 3f2a9c1d7e40
Revises:
Create Date: 2026-10-19 09:12:44.108342

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel


# revision identifiers, used by Alembic.
revision: str = '3f2a9c1d7e40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Enum columns store member names, as SQLModel maps them
componenttype = sa.Enum('FABRIC', 'TRIM', name='componenttype')
componentstatus = sa.Enum('PENDING', 'APPROVED', 'REJECTED', name='componentstatus')
fibretype = sa.Enum(
    'COTTON', 'ORGANIC_COTTON', 'BCI_COTTON', 'POLYESTER', 'RECYCLED_POLYESTER',
    'NYLON', 'RECYCLED_NYLON', 'VISCOSE', 'TENCEL', 'MODAL', 'LINEN', 'SILK',
    'WOOL', 'CASHMERE', 'ELASTANE', 'SPANDEX', 'OTHER', name='fibretype')
fabricconstruction = sa.Enum(
    'JERSEY', 'INTERLOCK', 'RIB', 'FLEECE', 'FRENCH_TERRY', 'TWILL', 'POPLIN',
    'DENIM', 'CANVAS', 'SATIN', 'CHIFFON', 'VOILE', 'OTHER', name='fabricconstruction')
dyemethod = sa.Enum(
    'PIECE_DYED', 'YARN_DYED', 'GARMENT_DYED', 'PRINTED', 'RAW', 'OTHER', name='dyemethod')
stylestage = sa.Enum(
    'BASE', 'BASE_APPROVED', 'BULK', 'BULK_APPROVED', 'PRODUCT', 'PRODUCT_APPROVED',
    name='stylestage')
stylestatus = sa.Enum(
    'PENDING', 'SUBMITTED', 'APPROVED', 'DEACTIVATED', 'CANCELLED', name='stylestatus')
goldsealstatus = sa.Enum(
    'NOT_STARTED', 'SUBMITTED', 'APPROVED', 'REJECTED', name='goldsealstatus')
linkstatus = sa.Enum('PENDING', 'APPROVED', name='linkstatus')
testlevel = sa.Enum('BASE', 'BULK', 'GARMENT', name='testlevel')
teststatus = sa.Enum('SUBMITTED', 'TESTED', name='teststatus')
parameterstatus = sa.Enum('PASS', 'FAIL', name='parameterstatus')
priority = sa.Enum('URGENT', 'HIGH', 'NORMAL', 'LOW', name='priority')
certificatestatus = sa.Enum(
    'COMPLIANT', 'PENDING_AUDIT', 'AT_RISK', 'NON_COMPLIANT', name='certificatestatus')
technologisttype = sa.Enum('FABRIC', 'GARMENT', name='technologisttype')
inspectiontype = sa.Enum(
    'PRE_PRODUCTION', 'DURING_PRODUCTION', 'FINAL_RANDOM', 'CONTAINER_LOADING',
    'FACTORY_AUDIT', name='inspectiontype')
inspectionstatus = sa.Enum('SCHEDULED', 'COMPLETED', 'CANCELLED', name='inspectionstatus')
inspectionoutcome = sa.Enum('PASS', 'FAIL', name='inspectionoutcome')
auditaction = sa.Enum(
    'CREATE', 'UPDATE', 'APPROVE', 'REJECT', 'LINK', 'UNLINK', 'EXPIRE',
    'REQUEST_TEST', 'RECORD_RESULT', 'ADVANCE', 'GOLD_SEAL', 'INSPECTION',
    name='auditaction')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def _str():
    return sqlmodel.sql.sqltypes.AutoString()


def upgrade():
    op.create_table(
        'supplier',
        *_timestamps(),
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('code', _str(), nullable=False),
        sa.Column('name', _str(), nullable=False),
        sa.Column('self_approval_level', sa.Integer(), nullable=False),
        sa.Column('test_expiry_months', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_supplier_code', 'supplier', ['code'], unique=True)

    op.create_table(
        'technologist',
        *_timestamps(),
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', _str(), nullable=False),
        sa.Column('email', _str(), nullable=False),
        sa.Column('type', technologisttype, nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_technologist_email', 'technologist', ['email'], unique=True)

    op.create_table(
        'factory',
        *_timestamps(),
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('supplier_id', sa.Uuid(), nullable=False),
        sa.Column('name', _str(), nullable=False),
        sa.Column('country', _str(), nullable=False),
        sa.Column('on_time_delivery_pct', sa.Float(), nullable=False),
        sa.Column('certificate_status', certificatestatus, nullable=False),
        sa.ForeignKeyConstraint(['supplier_id'], ['supplier.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_factory_supplier_id', 'factory', ['supplier_id'])

    op.create_table(
        'component',
        *_timestamps(),
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('component_type', componenttype, nullable=False),
        sa.Column('mill', _str(), nullable=False),
        sa.Column('origin_country', _str(), nullable=False),
        sa.Column('reference_code', _str(), nullable=False),
        sa.Column('sustainable', sa.Boolean(), nullable=False),
        sa.Column('regenerative', sa.Boolean(), nullable=False),
        sa.Column('reach_compliant', sa.Boolean(), nullable=False),
        sa.Column('status', componentstatus, nullable=False),
        sa.Column('created_by', _str(), nullable=False),
        sa.Column('construction', fabricconstruction, nullable=True),
        sa.Column('weight_gsm', sa.Integer(), nullable=True),
        sa.Column('width_cm', sa.Integer(), nullable=True),
        sa.Column('dye_method', dyemethod, nullable=True),
        sa.Column('colour', _str(), nullable=True),
        sa.Column('trim_type', _str(), nullable=True),
        sa.Column('size', _str(), nullable=True),
        sa.Column('material', _str(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_component_component_type', 'component', ['component_type'])
    op.create_index('ix_component_reference_code', 'component', ['reference_code'], unique=True)
    op.create_index('ix_component_status', 'component', ['status'])

    op.create_table(
        'fibrecomposition',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('component_id', sa.Uuid(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('fibre_type', fibretype, nullable=False),
        sa.Column('percentage', sa.Integer(), nullable=False),
        sa.Column('sustainable', sa.Boolean(), nullable=False),
        sa.Column('recycled', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['component_id'], ['component.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_fibrecomposition_component_id', 'fibrecomposition', ['component_id'])

    op.create_table(
        'style',
        *_timestamps(),
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tu_style_no', _str(), nullable=False),
        sa.Column('description', _str(), nullable=False),
        sa.Column('season', _str(), nullable=True),
        sa.Column('division', _str(), nullable=True),
        sa.Column('supplier_id', sa.Uuid(), nullable=False),
        sa.Column('factory_id', sa.Uuid(), nullable=False),
        sa.Column('country_of_origin', _str(), nullable=False),
        sa.Column('stage', stylestage, nullable=False),
        sa.Column('status', stylestatus, nullable=False),
        sa.Column('fabric_tech_id', sa.Uuid(), nullable=False),
        sa.Column('garment_tech_id', sa.Uuid(), nullable=False),
        sa.Column('fabric_cut_date', sa.DateTime(), nullable=True),
        sa.Column('gold_seal_date', sa.DateTime(), nullable=True),
        sa.Column('base_approval_required', sa.DateTime(), nullable=True),
        sa.Column('gsw_status', goldsealstatus, nullable=False),
        sa.Column('gsw_version', sa.Integer(), nullable=False),
        sa.Column('gsw_submitted_at', sa.DateTime(), nullable=True),
        sa.Column('gsw_approved_at', sa.DateTime(), nullable=True),
        sa.Column('created_by', _str(), nullable=False),
        sa.ForeignKeyConstraint(['supplier_id'], ['supplier.id']),
        sa.ForeignKeyConstraint(['factory_id'], ['factory.id']),
        sa.ForeignKeyConstraint(['fabric_tech_id'], ['technologist.id']),
        sa.ForeignKeyConstraint(['garment_tech_id'], ['technologist.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_style_tu_style_no', 'style', ['tu_style_no'], unique=True)
    op.create_index('ix_style_supplier_id', 'style', ['supplier_id'])
    op.create_index('ix_style_factory_id', 'style', ['factory_id'])
    op.create_index('ix_style_stage', 'style', ['stage'])

    op.create_table(
        'componenttest',
        *_timestamps(),
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('component_id', sa.Uuid(), nullable=False),
        sa.Column('style_id', sa.Uuid(), nullable=False),
        sa.Column('level', testlevel, nullable=False),
        sa.Column('status', teststatus, nullable=False),
        sa.Column('priority', priority, nullable=False),
        sa.Column('lab_name', _str(), nullable=True),
        sa.Column('report_code', _str(), nullable=True),
        sa.Column('due_date', sa.DateTime(), nullable=False),
        sa.Column('test_date', sa.DateTime(), nullable=True),
        sa.Column('attachments', sa.JSON(), nullable=True),
        sa.Column('requested_by', _str(), nullable=False),
        sa.Column('recorded_by', _str(), nullable=True),
        sa.ForeignKeyConstraint(['component_id'], ['component.id']),
        sa.ForeignKeyConstraint(['style_id'], ['style.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_componenttest_component_id', 'componenttest', ['component_id'])
    op.create_index('ix_componenttest_style_id', 'componenttest', ['style_id'])
    op.create_index('ix_componenttest_level', 'componenttest', ['level'])
    op.create_index('ix_componenttest_status', 'componenttest', ['status'])

    op.create_table(
        'testparameter',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('test_id', sa.Uuid(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('name', _str(), nullable=False),
        sa.Column('specification', _str(), nullable=False),
        sa.Column('result', _str(), nullable=True),
        sa.Column('status', parameterstatus, nullable=False),
        sa.ForeignKeyConstraint(['test_id'], ['componenttest.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_testparameter_test_id', 'testparameter', ['test_id'])

    op.create_table(
        'stylecomponentlink',
        *_timestamps(),
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('style_id', sa.Uuid(), nullable=False),
        sa.Column('component_id', sa.Uuid(), nullable=False),
        sa.Column('tu_status', linkstatus, nullable=False),
        sa.Column('test_id', sa.Uuid(), nullable=True),
        sa.Column('base_test_copied_from', sa.Uuid(), nullable=True),
        sa.Column('base_test_copied_at', sa.DateTime(), nullable=True),
        sa.Column('base_test_expires_at', sa.DateTime(), nullable=True),
        sa.Column('linked_at', sa.DateTime(), nullable=False),
        sa.Column('linked_by', _str(), nullable=False),
        sa.Column('unlinked_at', sa.DateTime(), nullable=True),
        sa.Column('unlinked_by', _str(), nullable=True),
        sa.ForeignKeyConstraint(['style_id'], ['style.id']),
        sa.ForeignKeyConstraint(['component_id'], ['component.id']),
        sa.ForeignKeyConstraint(['test_id'], ['componenttest.id']),
        sa.ForeignKeyConstraint(['base_test_copied_from'], ['style.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_stylecomponentlink_style_id', 'stylecomponentlink', ['style_id'])
    op.create_index('ix_stylecomponentlink_component_id', 'stylecomponentlink', ['component_id'])
    op.create_index('ix_stylecomponentlink_tu_status', 'stylecomponentlink', ['tu_status'])
    op.create_index(
        'ix_stylecomponentlink_base_test_expires_at', 'stylecomponentlink', ['base_test_expires_at'])
    op.create_index(
        'uq_active_style_component',
        'stylecomponentlink',
        ['style_id', 'component_id'],
        unique=True,
        sqlite_where=sa.text('unlinked_at IS NULL'),
        postgresql_where=sa.text('unlinked_at IS NULL'),
    )

    op.create_table(
        'inspection',
        *_timestamps(),
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('factory_id', sa.Uuid(), nullable=False),
        sa.Column('style_id', sa.Uuid(), nullable=True),
        sa.Column('inspection_type', inspectiontype, nullable=False),
        sa.Column('status', inspectionstatus, nullable=False),
        sa.Column('result', inspectionoutcome, nullable=True),
        sa.Column('priority', priority, nullable=False),
        sa.Column('scheduled_date', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('sample_size', sa.Integer(), nullable=False),
        sa.Column('critical_defects', sa.Integer(), nullable=False),
        sa.Column('major_defects', sa.Integer(), nullable=False),
        sa.Column('minor_defects', sa.Integer(), nullable=False),
        sa.Column('inspector', _str(), nullable=True),
        sa.ForeignKeyConstraint(['factory_id'], ['factory.id']),
        sa.ForeignKeyConstraint(['style_id'], ['style.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_inspection_factory_id', 'inspection', ['factory_id'])
    op.create_index('ix_inspection_status', 'inspection', ['status'])

    op.create_table(
        'auditlogentry',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('actor', _str(), nullable=False),
        sa.Column('entity_type', _str(), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        sa.Column('action', auditaction, nullable=False),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_auditlogentry_actor', 'auditlogentry', ['actor'])
    op.create_index('ix_auditlogentry_entity_type', 'auditlogentry', ['entity_type'])
    op.create_index('ix_auditlogentry_entity_id', 'auditlogentry', ['entity_id'])


def downgrade():
    for table in (
        'auditlogentry', 'inspection', 'stylecomponentlink', 'testparameter',
        'componenttest', 'style', 'fibrecomposition', 'component', 'factory',
        'technologist', 'supplier',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for enum in (
            auditaction, inspectionoutcome, inspectionstatus, inspectiontype,
            technologisttype, certificatestatus, priority, parameterstatus,
            teststatus, testlevel, linkstatus, goldsealstatus, stylestatus,
            stylestage, dyemethod, fabricconstruction, fibretype,
            componentstatus, componenttype,
        ):
            enum.drop(bind, checkfirst=True)
