import uuid
from datetime import datetime
from src.models import db
from sqlalchemy import UniqueConstraint


def _iso(value):
    return value.isoformat() if value else None


class SequenceAssignment(db.Model):
    __tablename__ = 'sequence_assignments'
    
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sequence_id = db.Column(db.String(36), db.ForeignKey('prospection_sequences.id', ondelete='CASCADE'), nullable=False)
    prospect_id = db.Column(db.String(36), db.ForeignKey('prospects.id', ondelete='CASCADE'), nullable=False)
    assigned_by_id = db.Column(db.String(64), nullable=True)
    status = db.Column(db.String(20), nullable=False, default='ACTIVE')
    # Status options: ACTIVE, PAUSED, COMPLETED, STOPPED
    current_step = db.Column(db.Integer, nullable=False, default=1)  # 1-based; total_steps + 1 once exhausted
    completed_steps = db.Column(db.Integer, nullable=False, default=0)
    started_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    completed_at = db.Column(db.DateTime, nullable=True)
    last_activity_at = db.Column(db.DateTime, nullable=True)
    next_step_scheduled_at = db.Column(db.DateTime, nullable=True)
    version = db.Column(db.Integer, nullable=False)
    
    # Relationships
    activities = db.relationship('SequenceActivity', backref='assignment', lazy=True, cascade='all',
                                 order_by='SequenceActivity.scheduled_at')
    
    __table_args__ = (
        UniqueConstraint('sequence_id', 'prospect_id', name='uq_sequence_prospect'),
    )
    # Concurrent writers of the same row fail with StaleDataError instead of overwriting each other
    __mapper_args__ = {'version_id_col': version}
    
    def to_dict(self, activities=None, prospect=None):
        data = {
            'id': str(self.id),
            'sequence_id': str(self.sequence_id),
            'prospect_id': str(self.prospect_id),
            'assigned_by_id': self.assigned_by_id,
            'status': self.status,
            'current_step': self.current_step,
            'completed_steps': self.completed_steps,
            'started_at': _iso(self.started_at),
            'completed_at': _iso(self.completed_at),
            'last_activity_at': _iso(self.last_activity_at),
            'next_step_scheduled_at': _iso(self.next_step_scheduled_at)
        }
        if prospect is not None:
            data['prospect'] = prospect.to_summary()
        if activities is not None:
            data['activities'] = [activity.to_dict() for activity in activities]
        return data
    
    def __repr__(self):
        return f'<SequenceAssignment {self.prospect_id} in {self.sequence_id} ({self.status})>'


class SequenceActivity(db.Model):
    __tablename__ = 'sequence_activities'
    
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    assignment_id = db.Column(db.String(36), db.ForeignKey('sequence_assignments.id', ondelete='CASCADE'), nullable=False)
    step_id = db.Column(db.String(36), db.ForeignKey('sequence_steps.id', ondelete='SET NULL'), nullable=True)
    step_number = db.Column(db.Integer, nullable=False)
    action_type = db.Column(db.String(20), nullable=False)  # copied from the step when scheduled
    status = db.Column(db.String(20), nullable=False, default='PENDING')
    # Status options: PENDING, COMPLETED, FAILED, SKIPPED
    scheduled_at = db.Column(db.DateTime, nullable=False)
    executed_at = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    
    __table_args__ = (
        db.Index(
            'uq_sequence_activity_pending',
            'assignment_id',
            unique=True,
            sqlite_where=db.text("status = 'PENDING'"),
            postgresql_where=db.text("status = 'PENDING'"),
        ),
    )
    # a second report on the same row fails with StaleDataError
    __mapper_args__ = {'version_id_col': version}
    
    def to_dict(self):
        return {
            'id': str(self.id),
            'assignment_id': str(self.assignment_id),
            'step_id': str(self.step_id) if self.step_id else None,
            'step_number': self.step_number,
            'action_type': self.action_type,
            'status': self.status,
            'scheduled_at': _iso(self.scheduled_at),
            'executed_at': _iso(self.executed_at),
            'notes': self.notes,
            'created_at': _iso(self.created_at)
        }
    
    def __repr__(self):
        return f'<SequenceActivity step {self.step_number} {self.action_type} ({self.status})>'
