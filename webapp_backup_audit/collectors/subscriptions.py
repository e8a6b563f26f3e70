"""
Subscription Resolver
Maps human-readable subscription names onto subscriptions visible to the caller.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..config import SUBSCRIPTIONS_API_VERSION
from ..models import Subscription
from .base import BaseCollector

logger = logging.getLogger("webapp_backup_audit.collectors.subscriptions")


class SubscriptionNotFoundError(Exception):
    """Raised when no visible subscription carries the requested name."""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Subscription '{name}' is not visible to the authenticated identity")


class SubscriptionResolver(BaseCollector):
    name = "subscriptions"
    description = "Resolve subscription names to subscription ids"

    def __init__(self, arm):
        super().__init__(arm)
        self._visible: Optional[list[Subscription]] = None

    async def list_visible(self) -> list[Subscription]:
        """List (once per run) every subscription the identity can see."""
        if self._visible is None:
            items = await self.arm.get_all_pages("subscriptions", SUBSCRIPTIONS_API_VERSION)
            self._visible = [
                Subscription(
                    name=item.get("displayName", ""),
                    subscription_id=item.get("subscriptionId", ""),
                )
                for item in items
            ]
            logger.debug(f"{len(self._visible)} subscriptions visible")
        return self._visible

    async def resolve(self, name: str) -> Subscription:
        """Return the subscription whose display name matches exactly."""
        for subscription in await self.list_visible():
            if subscription.name == name:
                return subscription
        raise SubscriptionNotFoundError(name)
