from .base import BaseCollector
from .subscriptions import SubscriptionNotFoundError, SubscriptionResolver
from .webapps import WebAppCollector
from .backups import BackupCollector

__all__ = [
    "BaseCollector",
    "SubscriptionNotFoundError",
    "SubscriptionResolver",
    "WebAppCollector",
    "BackupCollector",
]
