import uuid
from datetime import datetime
from src.models import db
from sqlalchemy import JSON, UniqueConstraint


def _iso(value):
    return value.isoformat() if value else None


class SequenceDefinition(db.Model):
    __tablename__ = 'prospection_sequences'
    
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    total_steps = db.Column(db.Integer, nullable=False, default=0)  # always equals the number of steps
    created_by_id = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=True, onupdate=datetime.utcnow)
    
    # Relationships
    steps = db.relationship('SequenceStep', backref='sequence', lazy=True, cascade='all',
                            order_by='SequenceStep.step_number')
    assignments = db.relationship('SequenceAssignment', backref='sequence', lazy=True, cascade='all')
    
    def to_dict(self, steps=None):
        data = {
            'id': str(self.id),
            'name': self.name,
            'description': self.description,
            'is_active': bool(self.is_active),
            'total_steps': self.total_steps,
            'created_by_id': self.created_by_id,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }
        if steps is not None:
            data['steps'] = [step.to_dict() for step in steps]
        return data
    
    def __repr__(self):
        return f'<SequenceDefinition {self.name}>'


class SequenceStep(db.Model):
    __tablename__ = 'sequence_steps'
    
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sequence_id = db.Column(db.String(36), db.ForeignKey('prospection_sequences.id', ondelete='CASCADE'), nullable=False)
    step_number = db.Column(db.Integer, nullable=False)  # 1-based, contiguous within a sequence
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    action_type = db.Column(db.String(20), nullable=False)
    template_id = db.Column(db.String(64), nullable=True)
    delay_days = db.Column(db.Integer, nullable=False, default=1)
    delay_type = db.Column(db.String(32), nullable=False, default='AFTER_PREVIOUS')
    fixed_date = db.Column(db.DateTime, nullable=True)  # only read for FIXED_DATE steps
    conditions = db.Column(JSON, nullable=True)  # opaque, interpreted by the executor
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=True, onupdate=datetime.utcnow)
    
    __table_args__ = (
        UniqueConstraint('sequence_id', 'step_number', name='uq_sequence_step_number'),
    )
    
    def to_dict(self):
        return {
            'id': str(self.id),
            'sequence_id': str(self.sequence_id),
            'step_number': self.step_number,
            'name': self.name,
            'description': self.description,
            'action_type': self.action_type,
            'template_id': self.template_id,
            'delay_days': self.delay_days,
            'delay_type': self.delay_type,
            'fixed_date': _iso(self.fixed_date),
            'conditions': self.conditions,
            'is_active': bool(self.is_active),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }
    
    def __repr__(self):
        return f'<SequenceStep {self.step_number} {self.action_type} of {self.sequence_id}>'
