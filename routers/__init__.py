# Marketplace Routers Module
# Exports all modular API routers for the platform

from routers.admin import router as admin_router
from routers.push import router as push_router
from routers.storage import router as storage_router
from routers.campaigns import router as campaigns_router
from routers.applications import router as applications_router
from routers.tasks import router as tasks_router
from routers.payments import router as payments_router
from routers.shipments import router as shipments_router
from routers.disputes import router as disputes_router
from routers.notifications import router as notifications_router
from routers.realtime import router as realtime_router

__all__ = [
    'admin_router',
    'push_router',
    'storage_router',
    'campaigns_router',
    'applications_router',
    'tasks_router',
    'payments_router',
    'shipments_router',
    'disputes_router',
    'notifications_router',
    'realtime_router',
]
