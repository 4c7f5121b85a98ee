import uuid
from datetime import datetime
from src.models import db


class Prospect(db.Model):
    """Read-side projection of a sales prospect owned by the CRM."""
    __tablename__ = 'prospects'
    
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    company_name = db.Column(db.String(255), nullable=True)
    contact_name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    stage = db.Column(db.String(50), nullable=False, default='NEW')  # pipeline stage, used for stats grouping
    score = db.Column(db.Integer, nullable=True)
    is_converted = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    
    def to_summary(self):
        return {
            'id': str(self.id),
            'company_name': self.company_name,
            'contact_name': self.contact_name,
            'stage': self.stage,
            'score': self.score
        }
    
    def to_dict(self):
        data = self.to_summary()
        data.update({
            'email': self.email,
            'is_converted': bool(self.is_converted),
            'created_at': self.created_at.isoformat() if self.created_at else None
        })
        return data
    
    def __repr__(self):
        return f'<Prospect {self.company_name or self.id}>'
