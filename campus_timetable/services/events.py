# File: campus_timetable/services/events.py
"""Event queue between the scheduling core and notification delivery.

Core operations publish an event after their write has committed. Delivery
(announcements, per-user notifications, realtime rooms) happens when the
:class:`~campus_timetable.services.notification_service.NotificationDispatcher`
consumes the queue, so a delivery failure can never undo a schedule write.
"""
import json
import logging
from collections import deque
from datetime import datetime
from typing import Dict, Iterable, List, Optional

import redis

logger = logging.getLogger(__name__)

class EventBus:
    """Redis list when ``REDIS_URL`` is configured, in-process deque otherwise."""

    def __init__(self, app=None):
        self.queue_name = 'campus_timetable:events'
        self._redis: Optional[redis.Redis] = None
        self._pending: deque = deque()
        self.realtime_log: deque = deque(maxlen=500)
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        self.queue_name = app.config.get('EVENT_QUEUE_NAME', self.queue_name)
        redis_url = app.config.get('REDIS_URL')
        self._redis = redis.Redis.from_url(redis_url, decode_responses=True) if redis_url else None
        self._pending.clear()
        self.realtime_log.clear()
        app.extensions['event_bus'] = self

    def publish(self, event_type: str, payload: Dict) -> None:
        """Queue an event. Never raises."""
        event = {
            'type': event_type,
            'payload': payload,
            'published_at': datetime.utcnow().isoformat()
        }
        try:
            if self._redis is not None:
                self._redis.rpush(self.queue_name, json.dumps(event, default=str))
            else:
                self._pending.append(event)
            logger.debug('Queued %s event', event_type)
        except Exception:
            logger.exception('Failed to queue %s event', event_type)

    def has_pending(self) -> bool:
        if self._redis is not None:
            return True
        return bool(self._pending)

    def drain(self, limit: int = 500) -> List[Dict]:
        """Pop up to `limit` queued events."""
        events = []
        if self._redis is not None:
            while len(events) < limit:
                raw = self._redis.lpop(self.queue_name)
                if raw is None:
                    break
                events.append(json.loads(raw))
            return events

        while self._pending and len(events) < limit:
            events.append(self._pending.popleft())
        return events

    def emit_realtime(self, rooms: Iterable[str], event_name: str, payload: Dict) -> None:
        """Send a realtime message to subscribers of each room. Never raises."""
        for room in rooms:
            message = {'room': room, 'event': event_name, 'payload': payload}
            try:
                if self._redis is not None:
                    self._redis.publish(f'realtime:{room}', json.dumps(message, default=str))
                self.realtime_log.append(message)
            except Exception:
                logger.exception('Realtime emit %s to %s failed', event_name, room)
