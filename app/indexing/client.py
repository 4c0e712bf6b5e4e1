"""
HTTP client for the indexing API publish and metadata endpoints.

The client performs exactly one request per call. Retrying is a policy
decision owned by the decision engine and the retry phase, not by transport.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import requests

from app.indexing.errors import NotFoundError, ProtocolError, TransportError
from app.indexing.token_issuer import TokenIssuer

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    URL_UPDATED = "URL_UPDATED"
    URL_DELETED = "URL_DELETED"


@dataclass(frozen=True)
class PublishResult:
    url: str
    type: NotificationType
    response: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UrlMetadata:
    url: str
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def latest_update(self) -> dict[str, Any] | None:
        value = self.payload.get("latestUpdate")
        return value if isinstance(value, dict) else None

    @property
    def latest_remove(self) -> dict[str, Any] | None:
        value = self.payload.get("latestRemove")
        return value if isinstance(value, dict) else None


class IndexingClient:
    """
    Thin wrapper around ``urlNotifications:publish`` and ``urlNotifications/metadata``.
    """

    def __init__(
        self,
        *,
        token_issuer: TokenIssuer,
        publish_url: str,
        metadata_url: str,
        site_url: str,
        item_url_template: str = "{site_url}/job-details.php?id={item_id}",
        session: requests.Session | None = None,
        timeout_seconds: float = 15.0,
    ) -> None:
        self._token_issuer = token_issuer
        self._publish_url = publish_url
        self._metadata_url = metadata_url
        self._site_url = site_url.rstrip("/")
        self._item_url_template = item_url_template
        self._session = session or requests.Session()
        self._timeout_seconds = timeout_seconds

    def item_url(self, item_id: int) -> str:
        return self._item_url_template.format(site_url=self._site_url, item_id=item_id)

    def submit(self, url: str, notification_type: NotificationType) -> PublishResult:
        """
        Publish one URL notification. Any non-200 answer raises ProtocolError.
        """

        notification_type = NotificationType(notification_type)
        response = self._send(
            "POST",
            self._publish_url,
            json={"url": url, "type": notification_type.value},
        )
        if response.status_code != 200:
            raise ProtocolError(response.status_code, response.text)
        return PublishResult(
            url=url,
            type=notification_type,
            response=self._json_body(response),
        )

    def status(self, url: str) -> UrlMetadata:
        """
        Return the index's notification metadata for ``url``.
        """

        response = self._send("GET", self._metadata_url, params={"url": url})
        if response.status_code == 404:
            raise NotFoundError(f"No indexing metadata for url={url}")
        if response.status_code != 200:
            raise ProtocolError(response.status_code, response.text)
        return UrlMetadata(url=url, payload=self._json_body(response))

    def index_item(self, item_id: int) -> PublishResult:
        return self.submit(self.item_url(item_id), NotificationType.URL_UPDATED)

    def remove_item(self, item_id: int) -> PublishResult:
        return self.submit(self.item_url(item_id), NotificationType.URL_DELETED)

    def _send(
        self,
        method: str,
        url: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> requests.Response:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._token_issuer.get_token()}",
        }
        try:
            return self._session.request(
                method=method,
                url=url,
                json=json,
                params=params,
                headers=headers,
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            logger.warning("Indexing API unreachable method=%s url=%s error=%s", method, url, exc)
            raise TransportError(f"Indexing API unreachable: {exc}") from exc

    @staticmethod
    def _json_body(response: requests.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}
