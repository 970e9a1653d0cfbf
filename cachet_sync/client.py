"""
Async Cachet API client — the Remote Resource Client.

Typed CRUD over the two remote collections (components and incidents).
Every call is a fresh round trip; the only shared state is the
aiohttp session, so one client can serve many concurrent tasks.

Failure policy:
  - lenient (default): a non-2xx response or network exception is logged
    and degrades to None / [] / False
  - strict (fail_fast): the same conditions raise TransportError
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

import aiohttp

from cachet_sync.config import ACCESS_TOKEN_HEADER, IntegrationConfig
from cachet_sync.errors import TransportError
from cachet_sync.models import Component, Incident

logger = logging.getLogger(__name__)

COMPONENTS_ENDPOINT = "components"
INCIDENTS_ENDPOINT = "incidents"

# Stable newest-first ordering with a page large enough to hold every match
_LIST_QUERY = {"sort": "created_at", "order": "desc", "per_page": "1000"}


class CachetService(Protocol):
    """The remote operations the reconciliation engine depends on."""

    async def get_component(self, component_id: int) -> Optional[Component]: ...

    async def get_component_by_name(self, name: str, group_id: int) -> Optional[Component]: ...

    async def get_components(self, name: str) -> List[Component]: ...

    async def create_component(self, component: Component) -> Optional[Component]: ...

    async def update_component(self, component_id: int, component: Component) -> Optional[Component]: ...

    async def delete_component(self, component_id: int) -> bool: ...

    async def get_incidents(self, component_id: int) -> List[Incident]: ...

    async def create_incident(self, incident: Incident) -> Optional[Incident]: ...

    async def update_incident(self, incident_id: int, incident: Incident) -> Optional[Incident]: ...

    async def delete_incident(self, incident_id: int) -> bool: ...


class CachetClient:
    """
    aiohttp implementation of CachetService.

    Use as an async context manager, or pass an existing session which
    then stays owned by the caller:

        async with CachetClient(config) as client:
            component = await client.get_component_by_name("API", 0)
    """

    def __init__(
        self,
        config: IntegrationConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.config = config
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "CachetClient":
        self._ensure_session()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    # ─── Components ───────────────────────────────────────────

    async def get_component(self, component_id: int) -> Optional[Component]:
        data = await self._request("GET", f"{COMPONENTS_ENDPOINT}/{component_id}", missing_ok=True)
        return Component.from_dict(data) if isinstance(data, dict) else None

    async def get_component_by_name(self, name: str, group_id: int) -> Optional[Component]:
        """First component (newest) whose name and group both match."""
        for component in await self.get_components(name):
            if component.name == name and component.group_id == group_id:
                return component
        return None

    async def get_components(self, name: str) -> List[Component]:
        data = await self._request("GET", COMPONENTS_ENDPOINT, params={"name": name, **_LIST_QUERY})
        if not isinstance(data, list):
            return []
        return [Component.from_dict(item) for item in data]

    async def create_component(self, component: Component) -> Optional[Component]:
        payload = component.to_payload()
        data = await self._request("POST", COMPONENTS_ENDPOINT, json=payload)
        return Component.from_dict(data) if isinstance(data, dict) else None

    async def update_component(self, component_id: int, component: Component) -> Optional[Component]:
        payload = component.to_payload()
        data = await self._request("PUT", f"{COMPONENTS_ENDPOINT}/{component_id}", json=payload)
        return Component.from_dict(data) if isinstance(data, dict) else None

    async def delete_component(self, component_id: int) -> bool:
        return await self._delete(f"{COMPONENTS_ENDPOINT}/{component_id}")

    # ─── Incidents ────────────────────────────────────────────

    async def get_incidents(self, component_id: int) -> List[Incident]:
        # Cachet's filter parameter really is spelled component_Id
        data = await self._request(
            "GET",
            INCIDENTS_ENDPOINT,
            params={"component_Id": str(component_id), **_LIST_QUERY},
        )
        if not isinstance(data, list):
            return []
        return [Incident.from_dict(item) for item in data]

    async def create_incident(self, incident: Incident) -> Optional[Incident]:
        payload = incident.to_payload()
        data = await self._request("POST", INCIDENTS_ENDPOINT, json=payload)
        return Incident.from_dict(data) if isinstance(data, dict) else None

    async def update_incident(self, incident_id: int, incident: Incident) -> Optional[Incident]:
        payload = incident.to_payload()
        data = await self._request("PUT", f"{INCIDENTS_ENDPOINT}/{incident_id}", json=payload)
        return Incident.from_dict(data) if isinstance(data, dict) else None

    async def delete_incident(self, incident_id: int) -> bool:
        return await self._delete(f"{INCIDENTS_ENDPOINT}/{incident_id}")

    # ─── Transport ────────────────────────────────────────────

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.access_token:
            headers[ACCESS_TOKEN_HEADER] = self.config.access_token
        # Configured headers win over the defaults
        headers.update(self.config.headers)
        return headers

    def _auth(self) -> Optional[aiohttp.BasicAuth]:
        if self.config.uses_basic_auth:
            return aiohttp.BasicAuth(self.config.username, self.config.password or "")
        return None

    def _timeout(self) -> Optional[aiohttp.ClientTimeout]:
        if self.config.timeout:
            return aiohttp.ClientTimeout(total=self.config.timeout)
        return None

    def _url(self, endpoint: str) -> str:
        return f"{self.config.api_url}/{endpoint}"

    async def _request(
        self,
        method: str,
        endpoint: str,
        missing_ok: bool = False,
        **kwargs: Any,
    ) -> Optional[Any]:
        """
        Execute one request and return the decoded "data" envelope.

        Returns None (lenient) or raises TransportError (strict) when the
        request fails. With ``missing_ok`` a 404 means the record does not
        exist and returns None in both modes.
        """
        session = self._ensure_session()
        url = self._url(endpoint)
        request_kwargs: Dict[str, Any] = {"headers": self._headers(), "auth": self._auth()}
        timeout = self._timeout()
        if timeout is not None:
            request_kwargs["timeout"] = timeout
        request_kwargs.update(kwargs)

        try:
            async with session.request(method, url, **request_kwargs) as resp:
                if resp.status == 404 and missing_ok:
                    logger.debug("%s %s: not found", method, url)
                    return None
                if resp.status >= 400:
                    return self._failed(
                        f"Received invalid HTTP response from Cachet API with status code: "
                        f"{resp.status}. Reason phrase: {resp.reason}",
                        method,
                        url,
                        status=resp.status,
                        reason=resp.reason,
                    )
                if resp.status == 204 or method == "DELETE":
                    return True
                body = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            return self._failed(
                f"There was an error while executing the HTTP request to the Cachet API: {exc!r}",
                method,
                url,
                cause=exc,
            )

        if isinstance(body, dict):
            return body.get("data")
        return None

    async def _delete(self, endpoint: str) -> bool:
        return bool(await self._request("DELETE", endpoint, missing_ok=True))

    def _failed(
        self,
        message: str,
        method: str,
        url: str,
        status: Optional[int] = None,
        reason: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        if self.config.fail_fast:
            raise TransportError(message, status=status, reason=reason) from cause
        logger.warning("%s %s failed: %s", method, url, message)
        return None
