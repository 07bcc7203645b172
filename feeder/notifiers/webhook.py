"""Webhook notifier (Netcool-style JSON endpoint)."""

import json
from typing import Optional

import aiohttp
from loguru import logger

from feeder.schemas import AlertPayload
from .base import BaseNotifier


class WebhookNotifier(BaseNotifier):
    """POSTs alerts as JSON to a monitoring webhook."""

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Content-Type": "application/json", "Accept": "application/json"},
            )
        return self._session

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def send(self, payload: AlertPayload) -> bool:
        body = payload.model_dump(mode="json", by_alias=True)
        logger.info(f"Sending alert to webhook: {payload.alert_id}")
        logger.debug(f"Alert payload: {json.dumps(body)}")

        try:
            session = await self._get_session()
            async with session.post(self.url, json=body) as response:
                if 200 <= response.status < 300:
                    logger.info(f"Alert sent successfully. Status: {response.status}")
                    return True
                text = await response.text()
                logger.warning(f"Webhook returned non-success status: {response.status}. Response: {text}")
                return False
        except Exception as e:
            logger.error(f"Failed to send alert to webhook: {e}")
            return False

    async def test_connectivity(self) -> bool:
        """Check that the webhook endpoint answers at all."""
        try:
            session = await self._get_session()
            async with session.get(self.url) as response:
                logger.info(f"Webhook connectivity test: Status {response.status}")
                return True
        except Exception as e:
            logger.warning(f"Webhook connectivity test failed: {e}")
            return False
