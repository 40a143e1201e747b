""" Registry API client for the topic operator.
"""

import logging
from typing import Optional

import httpx

from topic_operator.config import RegistryConfig
from topic_operator.models import Application

logger = logging.getLogger(__name__)

APPS_PATH = "/api/registry/v1alpha1/apps"


class RegistryClient:
    """ Async HTTP client for the application registry.
    """

    def __init__(self, config: RegistryConfig, transport=None):
        self.base_url = config.url.rstrip("/")
        self.token = config.token
        self.verify_tls = config.verify_tls
        self.timeout = config.timeout
        self.transport = transport

    def _get_headers(self):
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _client(self):
        return httpx.AsyncClient(
            verify=self.verify_tls, timeout=self.timeout, transport=self.transport
        )

    async def get_app(self, name) -> Optional[Application]:
        """ Fetch an application, None if it doesn't exist.
        """
        async with self._client() as client:
            url = f"{self.base_url}{APPS_PATH}/{name}"
            logger.debug(f"GET {url}")
            response = await client.get(url, headers=self._get_headers())
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return Application.model_validate(response.json())

    async def update_app(self, app: Application):
        """ Store an application.

        The registry rejects the update with a conflict if the resource
        version is outdated.
        """
        async with self._client() as client:
            url = f"{self.base_url}{APPS_PATH}/{app.metadata.name}"
            logger.debug(f"PUT {url}")
            response = await client.put(
                url,
                headers=self._get_headers(),
                json=app.model_dump(mode="json", exclude_none=True),
            )
            response.raise_for_status()
