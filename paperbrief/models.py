"""
Database Models

Key Models:
- User: identity-provider subject, created on first authenticated request
- Summary: one structured summary produced from an upload, owned by a user
"""
from datetime import datetime, timezone
import enum
import sqlite3
import uuid

from flask_login import UserMixin
from sqlalchemy import event
from sqlalchemy.engine import Engine

from paperbrief import db

TITLE_MAX_LENGTH = 140


@event.listens_for(Engine, 'connect')
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection"""
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


class SummarySource(enum.Enum):
    PDF = "pdf"
    IMAGE = "image"
    PDF_IMAGE = "pdf_image"

    @property
    def label(self):
        """User-facing form, e.g. ``pdf+image``"""
        return self.value.replace("_", "+")

    @classmethod
    def from_label(cls, label):
        return cls(label.replace("+", "_"))


def normalize_keywords(value):
    """Keywords as stored may be any JSON; clients only ever see a list of strings"""
    if isinstance(value, list):
        return [k for k in value if isinstance(k, str)]
    return []


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(191), primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=True)
    name = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    summaries = db.relationship(
        'Summary',
        back_populates='user',
        cascade='all, delete-orphan',
        passive_deletes=True,
    )


class Summary(db.Model):
    __tablename__ = 'summaries'
    __table_args__ = (
        db.Index('ix_summaries_user_created', 'user_id', 'created_at'),
    )

    id = db.Column(db.String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    user_id = db.Column(db.String(191), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    source = db.Column(
        db.Enum(SummarySource, name='summary_source', values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    title = db.Column(db.String(TITLE_MAX_LENGTH), nullable=False)
    summary = db.Column(db.Text, nullable=False)
    keywords = db.Column(db.JSON, nullable=False)
    input_text = db.Column(db.Text)
    pdf_name = db.Column(db.String(255))
    image_count = db.Column(db.Integer)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    user = db.relationship('User', back_populates='summaries')

    @classmethod
    def from_outcome(cls, user_id, outcome, default_title):
        """Build an unsaved row from a validated summarizer outcome"""
        title = (outcome.result.title or "")[:TITLE_MAX_LENGTH] or default_title[:TITLE_MAX_LENGTH]
        return cls(
            user_id=user_id,
            source=SummarySource.from_label(outcome.source),
            title=title,
            summary=outcome.result.summary,
            keywords=list(outcome.result.keywords),
            input_text=outcome.input_text or "",
            pdf_name=outcome.pdf_name,
            image_count=outcome.image_count,
        )

    def to_dict(self, include_input=False):
        """Convert summary to dictionary for API responses"""
        result = {
            'id': self.id,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'source': self.source.label,
            'title': self.title,
            'summary': self.summary,
            'keywords': normalize_keywords(self.keywords),
            'pdfName': self.pdf_name,
            'imageCount': self.image_count,
        }
        if include_input:
            result['inputText'] = self.input_text
        return result
