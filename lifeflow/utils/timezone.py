from datetime import datetime, timedelta, timezone


def utcnow():
    """
    Returns the current UTC time as a naive datetime, matching the
    naive UTC values stored in the database
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def hours_from_now(hours, now=None):
    return (now or utcnow()) + timedelta(hours=hours)


def format_time_remaining(expires_at, now=None):
    """
    Human readable time left before expiry, e.g. "5h left" or "42m left"
    """
    if expires_at is None:
        return None
    remaining = expires_at - (now or utcnow())
    if remaining.total_seconds() <= 0:
        return 'expired'
    hours = int(remaining.total_seconds() // 3600)
    if hours < 1:
        minutes = int(remaining.total_seconds() // 60)
        return f"{minutes}m left"
    return f"{hours}h left"


def isoformat(dt):
    if dt is None:
        return None
    return dt.isoformat()
