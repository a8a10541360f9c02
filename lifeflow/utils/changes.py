"""
Row change notifications for blood requests and contact requests.

Changes are collected when the session flushes and handed to subscribers
only once the transaction commits; a rollback drops them. Each change is a
dict shaped like {'type': 'INSERT'|'UPDATE'|'DELETE', 'table': ..., 'new':
{...} or None, 'old': {...} or None}.
"""
import logging

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from lifeflow.models.request import BloodRequest, ContactRequest

logger = logging.getLogger(__name__)

TRACKED_MODELS = (BloodRequest, ContactRequest)

_PENDING_KEY = 'lifeflow_pending_changes'
_subscribers = {}
_installed = False


def subscribe(table, callback):
    """
    Register callback for committed changes on table. Returns a function
    that removes the subscription.
    """
    _subscribers.setdefault(table, []).append(callback)

    def unsubscribe():
        callbacks = _subscribers.get(table, [])
        if callback in callbacks:
            callbacks.remove(callback)

    return unsubscribe


def snapshot(instance):
    state = inspect(instance)
    return {attr.key: getattr(instance, attr.key) for attr in state.mapper.column_attrs}


def _loaded_snapshot(instance):
    # deleted rows can no longer be refreshed, so read only what is loaded
    state = inspect(instance)
    return {attr.key: state.dict.get(attr.key) for attr in state.mapper.column_attrs}


def _previous_snapshot(instance):
    state = inspect(instance)
    previous = {}
    for attr in state.mapper.column_attrs:
        history = state.attrs[attr.key].history
        previous[attr.key] = history.deleted[0] if history.deleted else getattr(instance, attr.key)
    return previous


def _collect(session, flush_context):
    pending = session.info.setdefault(_PENDING_KEY, [])
    for instance in session.new:
        if isinstance(instance, TRACKED_MODELS):
            pending.append({'type': 'INSERT', 'table': instance.__table__.name,
                            'new': snapshot(instance), 'old': None})
    for instance in session.dirty:
        if isinstance(instance, TRACKED_MODELS) and session.is_modified(instance):
            pending.append({'type': 'UPDATE', 'table': instance.__table__.name,
                            'new': snapshot(instance), 'old': _previous_snapshot(instance)})
    for instance in session.deleted:
        if isinstance(instance, TRACKED_MODELS):
            pending.append({'type': 'DELETE', 'table': instance.__table__.name,
                            'new': None, 'old': _loaded_snapshot(instance)})


def _publish(session):
    for change in session.info.pop(_PENDING_KEY, []):
        for callback in list(_subscribers.get(change['table'], [])):
            try:
                callback(change)
            except Exception:
                logger.exception(f"Change subscriber failed for {change['type']} on {change['table']}")


def _discard(session):
    session.info.pop(_PENDING_KEY, None)


def install():
    global _installed
    if _installed:
        return
    event.listen(Session, 'after_flush', _collect)
    event.listen(Session, 'after_commit', _publish)
    event.listen(Session, 'after_rollback', _discard)
    _installed = True
