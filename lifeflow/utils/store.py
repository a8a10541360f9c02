from types import SimpleNamespace

from lifeflow.utils import changes
from lifeflow.utils.visibility import request_access
from lifeflow.utils.timezone import utcnow


class RequestStore:
    """
    In-memory cache of blood requests kept current by applying committed
    change events. Views are derived on read, so a request that closes or
    expires drops out of the open feed without another fetch.

    The HTTP routes read the database directly; the store is for in-process
    consumers such as workers or a push gateway that want a live view
    without polling. Call attach() to start following changes.
    """

    def __init__(self, rows=()):
        self._rows = {}
        self._unsubscribe = None
        self.load(rows)

    def load(self, rows):
        for row in rows:
            data = row if isinstance(row, dict) else changes.snapshot(row)
            self._rows[data['id']] = SimpleNamespace(**data)

    def apply(self, change):
        if change['type'] == 'DELETE':
            self._rows.pop(change['old']['id'], None)
        else:
            self._rows[change['new']['id']] = SimpleNamespace(**change['new'])

    def attach(self):
        if self._unsubscribe is None:
            self._unsubscribe = changes.subscribe('blood_request', self.apply)
        return self

    def detach(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def get(self, request_id):
        return self._rows.get(request_id)

    def __len__(self):
        return len(self._rows)

    def _newest_first(self, rows):
        return sorted(rows, key=lambda r: (r.created_at, r.id), reverse=True)

    def open_requests(self, viewer_id, viewer_profile, now=None):
        now = now or utcnow()
        visible = [
            row for row in self._rows.values()
            if request_access(viewer_id, viewer_profile, row, now=now).can_read
        ]
        return self._newest_first(visible)

    def my_requests(self, user_id):
        return self._newest_first([row for row in self._rows.values() if row.requester_id == user_id])
