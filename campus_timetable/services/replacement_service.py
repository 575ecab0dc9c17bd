# File: campus_timetable/services/replacement_service.py
"""Substitute teacher assignment for single timetable entries."""
import logging
from datetime import datetime
from typing import Optional

from campus_timetable import db, event_bus
from campus_timetable.models.timetable import ReplacementRecord, TimetableEntry
from campus_timetable.services.identity_service import IdentityDirectory
from campus_timetable.utils.errors import NotFoundError

logger = logging.getLogger(__name__)

class ReplacementService:
    """Overwrites (never merges) the replacement overlay of one entry."""

    def __init__(self, identity: IdentityDirectory = None):
        self.identity = identity or IdentityDirectory()

    def assign_replacement(self, entry_id: int, substitute_id: Optional[int] = None,
                           substitute_name: Optional[str] = None, reason: Optional[str] = None,
                           assigned_by: Optional[int] = None) -> TimetableEntry:
        """Set or clear the substitute for `entry_id`.

        A descriptor with neither a substitute id nor a name clears the
        overlay, making the canonical teacher authoritative again.
        """
        entry = db.session.get(TimetableEntry, entry_id)
        if not entry:
            raise NotFoundError('Timetable entry not found')

        substitute_name = (substitute_name or '').strip() or None
        substitute = None
        if substitute_id not in (None, ''):
            substitute = self.identity.find_teacher(substitute_id)
            if substitute is None:
                raise NotFoundError('Replacement teacher not found')

        if substitute is None and substitute_name is None:
            entry.replacement = None
            cleared = True
        else:
            entry.replacement = ReplacementRecord(
                teacher_id=substitute.id if substitute else None,
                teacher_name=substitute_name or substitute.name,
                reason=(reason or '').strip(),
                assigned_by=assigned_by,
                assigned_at=datetime.utcnow()
            )
            cleared = False

        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        if cleared:
            logger.info('Cleared replacement on entry %s', entry.id)
            event_bus.publish('replacement_cleared', {'entry_id': entry.id})
        else:
            logger.info('Assigned replacement %s on entry %s', entry.replacement_teacher_name, entry.id)
            event_bus.publish('replacement_assigned', {
                'entry_id': entry.id,
                'substitute_id': entry.replacement_teacher_id,
                'assigned_by': assigned_by
            })
        return entry

    @staticmethod
    def is_teaching(entry: TimetableEntry, user_id: int) -> bool:
        """Replacement first, canonical teacher second."""
        return entry.is_taught_by(user_id)
