"""WebDAV implementation of the remote store contract."""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, List
from urllib.parse import urljoin

import requests

from tenderaudit.config import StoreSettings
from tenderaudit.errors import NotFound, ProtocolError, RemoteUnavailable
from tenderaudit.models import DirectoryEntry
from tenderaudit.remote.propfind import PROPFIND_BODY, parse_multistatus

LOGGER = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


class WebDAVClient:
    """Thin client issuing PROPFIND/GET/PUT/MKCOL/DELETE/MOVE with basic auth."""

    def __init__(self, settings: StoreSettings, *, session: requests.Session | None = None) -> None:
        settings.validate()
        self.settings = settings
        self._session = session or requests.Session()
        self._session.auth = (settings.username or "", settings.password or "")

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "WebDAVClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def url_for(self, path: str) -> str:
        host = self.settings.host or ""
        base = host if host.endswith("/") else host + "/"
        return urljoin(base, path)

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = self.url_for(path)
        LOGGER.debug("%s %s", method, url)
        try:
            return self._session.request(method, url, timeout=self.settings.timeout, **kwargs)
        except requests.RequestException as exc:
            raise RemoteUnavailable(path, detail=str(exc)) from exc

    @staticmethod
    def _check(response: requests.Response, path: str, *, allowed: Iterable[int] = ()) -> None:
        status = response.status_code
        if response.ok or status in allowed:
            return
        if status == 404:
            raise NotFound(path, status=status)
        raise RemoteUnavailable(path, status=status, detail=response.reason)

    def list(self, path: str) -> List[DirectoryEntry]:
        response = self._request(
            "PROPFIND",
            path,
            headers={"Depth": "1", "Content-Type": "application/xml"},
            data=PROPFIND_BODY,
        )
        self._check(response, path)
        return parse_multistatus(response.content)

    def read_bytes(self, path: str) -> bytes:
        response = self._request("GET", path)
        self._check(response, path)
        return response.content

    def read_text(self, path: str) -> str:
        return self.read_bytes(path).decode("utf-8", errors="replace")

    def read_json(self, path: str) -> Any | None:
        try:
            raw = self.read_bytes(path)
        except NotFound:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise ProtocolError(f"{path} is not valid JSON: {exc}") from exc

    def write_bytes(self, path: str, data: bytes, *, content_type: str = "application/octet-stream") -> None:
        response = self._request("PUT", path, data=data, headers={"Content-Type": content_type})
        self._check(response, path)

    def write_json(self, path: str, document: Any) -> None:
        body = json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")
        self.write_bytes(path, body, content_type=JSON_CONTENT_TYPE)

    def mkdir(self, path: str) -> bool:
        response = self._request("MKCOL", path)
        # 405 Method Not Allowed means the collection already exists
        self._check(response, path, allowed=(405,))
        return response.status_code != 405

    def delete(self, path: str) -> None:
        response = self._request("DELETE", path)
        self._check(response, path)

    def move(self, source: str, destination: str) -> None:
        response = self._request(
            "MOVE",
            source,
            headers={"Destination": self.url_for(destination), "Overwrite": "F"},
        )
        self._check(response, source)
