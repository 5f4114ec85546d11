from .tasks import router as tasks_router
from .profiles import router as profiles_router
from .transfer import router as transfer_router
from .events import router as events_router

__all__ = [
    "tasks_router",
    "profiles_router",
    "transfer_router",
    "events_router",
]
