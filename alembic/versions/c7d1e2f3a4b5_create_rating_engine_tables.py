"""create_rating_engine_tables

Revision ID: c7d1e2f3a4b5
Revises:
Create Date: 2026-10-19 09:00:00.000000

성과 등급 엔진 테이블 생성.
조직/직원, 평가 주기/문항, 평가 배정/응답, 등급 설정, 성과 등급,
캘리브레이션 세션, 등급 감사 로그.
Create the rating engine tables: organizations/employees, cycles/questions,
assignments/responses, rating configs, performance ratings, calibration
sessions and rating audit logs.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID


# revision identifiers, used by Alembic.
revision: str = 'c7d1e2f3a4b5'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # organizations / employees — 테넌트와 직원 (Tenants and their employees)
    op.create_table(
        'organizations',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        'employees',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', UUID(as_uuid=True), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('position', sa.String(255), nullable=True),
        sa.Column('department_id', UUID(as_uuid=True), nullable=True),
        sa.Column('manager_id', UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='SET NULL'), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_employees_organization_id', 'employees', ['organization_id'])
    op.create_index('ix_employees_department_id', 'employees', ['department_id'])

    # performance_cycles / cycle_questions — 평가 주기와 문항 (Cycles and their questions)
    op.create_table(
        'performance_cycles',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', UUID(as_uuid=True), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20), server_default='DRAFT', nullable=False),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('competency_snapshot', JSONB(), nullable=True),
        sa.Column('evaluator_weights_override', JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_performance_cycles_organization_id', 'performance_cycles', ['organization_id'])
    op.create_table(
        'cycle_questions',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('cycle_id', UUID(as_uuid=True), sa.ForeignKey('performance_cycles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('competency_code', sa.String(50), nullable=True),
        sa.Column('sort_order', sa.Integer(), server_default='0', nullable=False),
    )
    op.create_index('ix_cycle_questions_cycle_id', 'cycle_questions', ['cycle_id'])

    # evaluation_assignments / evaluation_responses — 평가 배정과 응답 (Assignments and answers)
    op.create_table(
        'evaluation_assignments',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', UUID(as_uuid=True), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('cycle_id', UUID(as_uuid=True), sa.ForeignKey('performance_cycles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('evaluator_id', UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('evaluatee_id', UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('evaluation_type', sa.String(30), nullable=False),
        sa.Column('status', sa.String(20), server_default='PENDING', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_evaluation_assignments_cycle_id', 'evaluation_assignments', ['cycle_id'])
    op.create_index('ix_evaluation_assignments_evaluatee_id', 'evaluation_assignments', ['evaluatee_id'])
    op.create_table(
        'evaluation_responses',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('assignment_id', UUID(as_uuid=True), sa.ForeignKey('evaluation_assignments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('question_id', UUID(as_uuid=True), sa.ForeignKey('cycle_questions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=True),
        sa.Column('normalized_score', sa.Float(), nullable=True),
        sa.Column('text_response', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('assignment_id', 'question_id', name='uq_eval_response_assignment_question'),
    )
    op.create_index('ix_evaluation_responses_assignment_id', 'evaluation_responses', ['assignment_id'])

    # performance_rating_configs — 조직별 척도/가중치 (One config per tenant)
    op.create_table(
        'performance_rating_configs',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', UUID(as_uuid=True), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('scale_type', sa.String(20), server_default='five_level', nullable=False),
        sa.Column('levels', JSONB(), nullable=True),
        sa.Column('evaluator_weights', JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # calibration_sessions — performance_ratings가 참조하므로 먼저 생성 (Referenced by ratings)
    op.create_table(
        'calibration_sessions',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', UUID(as_uuid=True), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('cycle_id', UUID(as_uuid=True), sa.ForeignKey('performance_cycles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20), server_default='OPEN', nullable=False),
        sa.Column('created_by', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_calibration_sessions_cycle_id', 'calibration_sessions', ['cycle_id'])

    # performance_ratings — 주기×직원 성과 등급, upsert 키 (cycle_id, employee_id)
    op.create_table(
        'performance_ratings',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', UUID(as_uuid=True), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('cycle_id', UUID(as_uuid=True), sa.ForeignKey('performance_cycles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('employee_id', UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('calculated_score', sa.Float(), server_default='0', nullable=False),
        sa.Column('calculated_level', sa.String(50), nullable=False),
        sa.Column('final_score', sa.Float(), nullable=True),
        sa.Column('final_level', sa.String(50), nullable=True),
        sa.Column('self_score', sa.Float(), nullable=True),
        sa.Column('manager_score', sa.Float(), nullable=True),
        sa.Column('peer_avg_score', sa.Float(), nullable=True),
        sa.Column('upward_avg_score', sa.Float(), nullable=True),
        sa.Column('evaluation_completeness', sa.Float(), server_default='0', nullable=False),
        sa.Column('total_evaluations', sa.Integer(), server_default='0', nullable=False),
        sa.Column('completed_evaluations', sa.Integer(), server_default='0', nullable=False),
        sa.Column('potential_score', sa.Float(), nullable=True),
        sa.Column('potential_level', sa.String(20), nullable=True),
        sa.Column('potential_aspiration', sa.Integer(), nullable=True),
        sa.Column('potential_ability', sa.Integer(), nullable=True),
        sa.Column('potential_engagement', sa.Integer(), nullable=True),
        sa.Column('potential_rated_by', sa.String(255), nullable=True),
        sa.Column('potential_rated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('potential_notes', sa.Text(), nullable=True),
        sa.Column('nine_box_position', sa.String(30), nullable=True),
        sa.Column('calibrated', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('calibrated_by', sa.String(255), nullable=True),
        sa.Column('calibrated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('calibration_session_id', UUID(as_uuid=True), sa.ForeignKey('calibration_sessions.id', ondelete='SET NULL'), nullable=True),
        sa.Column('adjustment_reason', sa.Text(), nullable=True),
        sa.Column('adjustment_type', sa.String(20), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('cycle_id', 'employee_id', name='uq_perf_rating_cycle_employee'),
    )
    op.create_index('ix_performance_ratings_organization_id', 'performance_ratings', ['organization_id'])
    op.create_index('ix_performance_ratings_cycle_id', 'performance_ratings', ['cycle_id'])

    # rating_audit_logs — 등급 변경 감사 로그 (Append-only audit trail)
    op.create_table(
        'rating_audit_logs',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', UUID(as_uuid=True), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('rating_id', UUID(as_uuid=True), sa.ForeignKey('performance_ratings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('cycle_id', UUID(as_uuid=True), nullable=False),
        sa.Column('employee_id', UUID(as_uuid=True), nullable=False),
        sa.Column('action', sa.String(30), nullable=False),
        sa.Column('actor', sa.String(255), nullable=True),
        sa.Column('session_id', UUID(as_uuid=True), nullable=True),
        sa.Column('details', JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_rating_audit_logs_rating_id', 'rating_audit_logs', ['rating_id'])
    op.create_index('ix_rating_audit_logs_session_id', 'rating_audit_logs', ['session_id'])


def downgrade() -> None:
    op.drop_table('rating_audit_logs')
    op.drop_table('performance_ratings')
    op.drop_table('calibration_sessions')
    op.drop_table('performance_rating_configs')
    op.drop_table('evaluation_responses')
    op.drop_table('evaluation_assignments')
    op.drop_table('cycle_questions')
    op.drop_table('performance_cycles')
    op.drop_table('employees')
    op.drop_table('organizations')
