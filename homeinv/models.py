from datetime import datetime

from homeinv.extensions import db


class StoredDocument(db.Model):
    """One persisted collection (inventory, purchases, settings, ...)."""

    __tablename__ = "stored_document"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False, unique=True)
    payload = db.Column(db.Text, nullable=False)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class ActivityLog(db.Model):
    __tablename__ = "activity_log"

    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    level = db.Column(db.String(16), nullable=False)
    source = db.Column(db.String(64), nullable=True)
    message = db.Column(db.Text, nullable=False)
    context_json = db.Column(db.JSON, nullable=True)
