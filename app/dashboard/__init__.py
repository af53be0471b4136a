from app.dashboard.contracts import BackendError, ChangeEvent, Identity
from app.dashboard.reconcile import BookmarkRecord
from app.dashboard.view import DashboardView

__all__ = [
    "BackendError",
    "BookmarkRecord",
    "ChangeEvent",
    "DashboardView",
    "Identity",
]
