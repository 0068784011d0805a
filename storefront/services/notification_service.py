# storefront/services/notification_service.py
import requests
from requests import RequestException

from storefront.celery_worker import celery_app
from storefront.utils.settings import ORDER_AUTOMATION_WEBHOOK_URL, AUTOMATION_TIMEOUT_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Fires the order-confirmation automation hook (n8n style) after an order
    is committed. Best effort: the order is already persisted, so nothing
    raised here may reach the caller.
    """

    def __init__(self, webhook_url: str | None = None):
        self.webhook_url = ORDER_AUTOMATION_WEBHOOK_URL if webhook_url is None else webhook_url

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    def send_order_confirmation(self, summary: dict) -> bool:
        if not self.enabled:
            logger.info(f"Automation hook not configured, skipping order {summary.get('orderId')}")
            return False

        try:
            send_order_confirmation_task.delay(self.webhook_url, summary)
        except Exception as e:
            logger.warning(f"Could not enqueue confirmation for order {summary.get('orderId')}: {e}")
            return False
        return True


@celery_app.task(name="storefront.services.notification_service.send_order_confirmation_task")
def send_order_confirmation_task(webhook_url: str, summary: dict):
    """
    Celery task - POSTs the order summary to the automation endpoint.
    Failures are logged and abandoned.
    """
    order_id = summary.get("orderId")
    try:
        resp = requests.post(webhook_url, json=summary, timeout=AUTOMATION_TIMEOUT_SECONDS)
        resp.raise_for_status()
    except RequestException as e:
        logger.error(f"[NOTIFICATION] Automation hook failed for order {order_id}: {e}")
        return {"order_id": order_id, "status": "failed"}

    logger.info(f"[NOTIFICATION] Automation hook fired for order {order_id}")
    return {"order_id": order_id, "status": "sent"}
