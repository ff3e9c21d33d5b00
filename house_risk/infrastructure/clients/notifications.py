"""Notification service HTTP client with exponential backoff retry logic"""

import time
from typing import Any, Dict, List, Protocol

import httpx

from house_risk.config import settings
from house_risk.domain.exceptions import NotificationDeliveryError
from house_risk.infrastructure.observability.metrics import notification_latency_histogram, notification_failure_counter


class HouseNotifier(Protocol):
    def notify_house(self, house_id: int, user_ids: List[int], title: str, message: str, data: Dict[str, Any]) -> None:
        ...


class NotificationClient:
    """Client for the external notification collaborator (in-app + push delivery)"""

    def __init__(
        self,
        webhook_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep=time.sleep,
    ):
        self.webhook_url = webhook_url or settings.notification_webhook_url
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = settings.notification_max_retries
        self.backoff_base = settings.notification_backoff_base
        self.transport = transport
        self._sleep = sleep

    def notify_house(self, house_id: int, user_ids: List[int], title: str, message: str, data: Dict[str, Any]) -> None:
        """
        Deliver one message to every member of a house.

        Retry strategy:
        - Exponential backoff: base, 2*base, 4*base ...
        - Retries on 5xx errors and network failures, not on 4xx

        Raises:
            NotificationDeliveryError: after the final failed attempt
        """
        payload = {
            "house_id": house_id,
            "user_ids": user_ids,
            "title": title,
            "message": message,
            "data": data,
        }
        attempt = 0
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            while True:
                try:
                    with notification_latency_histogram.time():
                        response = client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                        return  # Success

                except httpx.HTTPStatusError as e:
                    attempt += 1
                    notification_failure_counter.inc()
                    if e.response.status_code < 500 or attempt >= self.max_retries:
                        raise NotificationDeliveryError(
                            f"Notification service error: {e.response.status_code}"
                        ) from e

                except httpx.RequestError as e:
                    attempt += 1
                    notification_failure_counter.inc()
                    if attempt >= self.max_retries:
                        raise NotificationDeliveryError(f"Notification service unavailable: {e}") from e

                backoff = self.backoff_base * (2 ** (attempt - 1))
                self._sleep(backoff)
