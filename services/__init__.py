# Services Module for the LEADERS platform
# Contains business logic services

from services.notification_service import NotificationService, NotificationType
from services.audit_service import AuditService

__all__ = [
    'NotificationService',
    'NotificationType',
    'AuditService',
]
