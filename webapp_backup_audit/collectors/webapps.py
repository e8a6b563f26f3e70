"""
Web App Collector
Enumerates App Service sites within one subscription.
"""

from __future__ import annotations

import logging

from ..config import WEB_API_VERSION
from ..models import Subscription, WebApp
from .base import BaseCollector, resource_group_from_id

logger = logging.getLogger("webapp_backup_audit.collectors.webapps")


class WebAppCollector(BaseCollector):
    name = "webapps"
    description = "App Service sites in a subscription"

    async def list_web_apps(self, subscription: Subscription) -> list[WebApp]:
        """
        List every site in the subscription.
        Errors propagate: a subscription that cannot be enumerated is not audited.
        """
        items = await self.arm.get_all_pages(
            f"subscriptions/{subscription.subscription_id}/providers/Microsoft.Web/sites",
            WEB_API_VERSION,
        )
        apps = []
        for item in items:
            resource_group = (
                item.get("properties", {}).get("resourceGroup")
                or resource_group_from_id(item.get("id", ""))
            )
            apps.append(WebApp(
                subscription=subscription,
                resource_group=resource_group,
                name=item.get("name", ""),
            ))
        logger.info(f"[{subscription.name}] {len(apps)} web apps found")
        return apps
