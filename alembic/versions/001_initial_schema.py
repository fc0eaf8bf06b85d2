"""partners, wallet_channel_balances and balance_logs

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

PARTNER_KINDS = (
    'system_admin', 'head_office', 'main_office', 'sub_office',
    'distributor', 'store', 'end_user',
)
PARTNER_STATUSES = ('active', 'inactive', 'blocked')
TRANSFER_TYPES = ('deposit', 'withdrawal')
TRANSACTION_KINDS = (
    'credit_pool_allocation', 'credit_pool_recovery',
    'partner_deposit', 'partner_withdrawal',
    'forced_deposit', 'forced_withdrawal',
)


def upgrade() -> None:
    """파트너 트리, 채널 잔액, 잔액 변경 기록 테이블 생성"""
    op.create_table(
        'partners',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('tier', sa.SmallInteger, nullable=False, comment='1 = system admin ... 7 = end user'),
        sa.Column('parent_id', sa.String(36), sa.ForeignKey('partners.id', ondelete='RESTRICT'), nullable=True),
        sa.Column('kind', sa.Enum(*PARTNER_KINDS, name='partnerkind'), nullable=False),
        sa.Column('status', sa.Enum(*PARTNER_STATUSES, name='partnerstatus'), nullable=False),
        sa.Column('nickname', sa.String(100), nullable=False),
        sa.Column('ledger_balance', sa.BigInteger, nullable=False, server_default='0', comment='보유금 (Lv3~Lv7); always zero on Lv1/Lv2'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('tier BETWEEN 1 AND 7', name='ck_partners_tier_range'),
        sa.CheckConstraint('ledger_balance >= 0', name='ck_partners_ledger_non_negative'),
        sa.CheckConstraint(
            '(tier = 1 AND parent_id IS NULL) OR (tier > 1 AND parent_id IS NOT NULL)',
            name='ck_partners_root_parent',
        ),
    )
    op.create_index('ix_partners_tier', 'partners', ['tier'])
    op.create_index('ix_partners_parent_id', 'partners', ['parent_id'])

    op.create_table(
        'wallet_channel_balances',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('partner_id', sa.String(36), sa.ForeignKey('partners.id', ondelete='CASCADE'), nullable=False),
        sa.Column('channel', sa.String(32), nullable=False, comment='Funding channel identifier (e.g. invest, oroplay)'),
        sa.Column('balance', sa.BigInteger, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('partner_id', 'channel', name='uq_wallet_channel_partner_channel'),
        sa.CheckConstraint('balance >= 0', name='ck_wallet_channel_non_negative'),
    )
    op.create_index('ix_wallet_channel_balances_partner_id', 'wallet_channel_balances', ['partner_id'])

    op.create_table(
        'balance_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('transfer_id', sa.String(36), nullable=False, comment='Correlation key shared by both rows of a transfer'),
        sa.Column('partner_id', sa.String(36), sa.ForeignKey('partners.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('counterparty_id', sa.String(36), sa.ForeignKey('partners.id', ondelete='SET NULL'), nullable=True),
        sa.Column('processed_by', sa.String(36), sa.ForeignKey('partners.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('transfer_type', sa.Enum(*TRANSFER_TYPES, name='transfertype'), nullable=False),
        sa.Column('transaction_kind', sa.Enum(*TRANSACTION_KINDS, name='transactionkind'), nullable=False),
        sa.Column('forced', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('channel', sa.String(32), nullable=True),
        sa.Column('amount', sa.BigInteger, nullable=False, comment='Signed amount (+credit/-debit)'),
        sa.Column('balance_before', sa.BigInteger, nullable=False),
        sa.Column('balance_after', sa.BigInteger, nullable=False),
        sa.Column('memo', sa.String(500), nullable=True),
        sa.Column('integrity_hash', sa.String(64), nullable=False, comment='SHA-256 hash for tamper detection'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_balance_logs_transfer_id', 'balance_logs', ['transfer_id'])
    op.create_index('ix_balance_logs_transaction_kind', 'balance_logs', ['transaction_kind'])
    op.create_index('ix_balance_logs_partner_created', 'balance_logs', ['partner_id', 'created_at'])
    op.create_index('ix_balance_logs_created_at', 'balance_logs', ['created_at'])


def downgrade() -> None:
    """테이블 삭제"""
    op.drop_table('balance_logs')
    op.drop_table('wallet_channel_balances')
    op.drop_table('partners')
    for enum_name in ('transactionkind', 'transfertype', 'partnerstatus', 'partnerkind'):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
