"""Ambari REST client: aiohttp implementation of TransportPort."""

import asyncio
import json
import sys
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import aiohttp

from clusterops.config import AmbariConfig
from clusterops.ports.outbound import TransportError, TransportResponse

API_PREFIX = "/api/v1"


def _log(msg: str):
    print(msg, file=sys.stderr)


def _error_message(status: int, body: str) -> str:
    """Prefer the server's JSON ``message`` field over the raw body."""
    try:
        data = json.loads(body)
    except ValueError:
        return f"HTTP {status}: {body}".strip()
    if isinstance(data, dict) and data.get("message"):
        return data["message"]
    return f"HTTP {status}: {body}".strip()


def strip_jsonp(body: str) -> Optional[Dict[str, Any]]:
    """``cb({...})`` -> ``{...}``; plain JSON passes through."""
    text = body.strip()
    if not text:
        return None
    start, end = text.find("("), text.rfind(")")
    if not text.startswith(("{", "[")) and start != -1 and end > start:
        text = text[start + 1:end]
    return json.loads(text)


class AmbariClient:
    """Talks to the Ambari server. One aiohttp session per request."""

    def __init__(self, config: AmbariConfig):
        self._config = config
        self._auth = aiohttp.BasicAuth(config.username, config.password)
        self._headers = {"X-Requested-By": "ambari", "Accept": "application/json"}

    @property
    def api_root(self) -> str:
        return self._config.base_url.rstrip("/") + API_PREFIX

    def url_for(self, path: str, predicate: Optional[str] = None, params: Optional[Dict[str, str]] = None) -> str:
        """Full URL. The predicate goes into the query string as is."""
        parts = []
        if predicate:
            parts.append(predicate)
        if params:
            parts.append(urlencode(params, safe="/,*"))
        url = self.api_root + path
        if parts:
            url += ("&" if "?" in url else "?") + "&".join(parts)
        return url

    async def get(
        self,
        path: str,
        predicate: Optional[str] = None,
        params: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[Dict[str, Any]]:
        url = self.url_for(path, predicate, params)
        response = await self._request("GET", url, timeout=timeout)
        return response.data

    async def send(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> TransportResponse:
        url = self.url_for(path, params=params)
        return await self._request(method, url, body=body)

    async def get_jsonp(self, url: str, callback_param: str = "jsonp") -> Optional[Dict[str, Any]]:
        """Fetch a JSONP feed outside the API root (e.g. the Nagios alerts page)."""
        sep = "&" if "?" in url else "?"
        full = f"{url}{sep}{callback_param}=?"
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    full,
                    timeout=aiohttp.ClientTimeout(total=self._config.request_timeout),
                ) as resp:
                    text = await resp.text()
                    if resp.status >= 400:
                        raise TransportError(_error_message(resp.status, text), status=resp.status)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"GET {url} failed: {e}") from e
        try:
            return strip_jsonp(text)
        except ValueError as e:
            raise TransportError(f"Malformed JSONP from {url}: {e}") from e

    async def _request(
        self,
        method: str,
        url: str,
        body: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> TransportResponse:
        total = timeout if timeout is not None else self._config.request_timeout
        kwargs: Dict[str, Any] = {
            "headers": self._headers,
            "auth": self._auth,
            "timeout": aiohttp.ClientTimeout(total=total),
        }
        if body is not None:
            # Ambari expects the JSON document as a text/plain body
            kwargs["data"] = json.dumps(body)
        try:
            async with aiohttp.ClientSession() as session:
                async with session.request(method, url, **kwargs) as resp:
                    text = await resp.text()
                    if resp.status >= 400:
                        message = _error_message(resp.status, text)
                        _log(f"[ambari] {method} {url} -> {resp.status}: {message}")
                        raise TransportError(message, status=resp.status)
                    status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            _log(f"[ambari] {method} {url} failed: {e}")
            raise TransportError(f"{method} {url} failed: {e}") from e

        if not text.strip():
            return TransportResponse(status=status, data=None)
        try:
            return TransportResponse(status=status, data=json.loads(text))
        except ValueError as e:
            raise TransportError(f"Malformed response from {url}: {e}", status=status) from e
