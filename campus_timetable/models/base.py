"""Base model class with common functionality."""
from datetime import date, datetime, time
from typing import Dict, Any
from campus_timetable import db

class BaseModel(db.Model):
    """Base model class with common fields and methods."""

    __abstract__ = True

    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def save(self) -> 'BaseModel':
        """Save instance to database."""
        db.session.add(self)
        db.session.commit()
        return self

    def delete(self) -> None:
        """Delete instance from database."""
        db.session.delete(self)
        db.session.commit()

    def to_dict(self, exclude: list = None) -> Dict[str, Any]:
        """Convert instance to dictionary."""
        exclude = exclude or []
        result = {}

        for column in self.__table__.columns:
            key = column.name
            if key not in exclude:
                value = getattr(self, key)
                if isinstance(value, time):
                    value = value.strftime('%H:%M')
                elif isinstance(value, (datetime, date)):
                    value = value.isoformat()
                result[key] = value

        return result

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} {self.id}>'
