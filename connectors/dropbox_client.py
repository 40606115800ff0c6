"""
Dropbox storage client.

Talks to the Dropbox HTTP API v2 with an async httpx client. Every request
carries a bearer token obtained from the shared TokenManager.
"""
import json
from datetime import datetime
from typing import Any

import httpx

from app.errors import StorageError
from app.logging_config import get_logger
from connectors.base import BaseStorageClient, SourceType, StorageEntry
from connectors.dropbox_auth import TokenManager

logger = get_logger(__name__)

API_URL = "https://api.dropboxapi.com/2"
CONTENT_URL = "https://content.dropboxapi.com/2"


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _error_summary(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        return body.get("error_summary") or str(body.get("error", ""))[:200]
    return str(body)[:200]


class DropboxClient(BaseStorageClient):
    """
    Remote storage client for a Dropbox account.

    Requires an app key, app secret and refresh token (see TokenManager).
    """

    def __init__(
        self,
        token_manager: TokenManager,
        http_client: httpx.AsyncClient,
        api_url: str = API_URL,
        content_url: str = CONTENT_URL,
    ):
        self.token_manager = token_manager
        self._http = http_client
        self.api_url = api_url
        self.content_url = content_url

    @property
    def source_type(self) -> SourceType:
        return SourceType.DROPBOX

    async def _send(self, url: str, **kwargs) -> httpx.Response:
        """
        POST to a Dropbox endpoint with a bearer token.

        A 401 means the cached token was revoked early; it is dropped and the
        request is sent once more with a freshly exchanged token.
        """
        extra_headers = kwargs.pop("headers", None) or {}
        for attempt in range(2):
            token = await self.token_manager.obtain()
            headers = {**extra_headers, "Authorization": f"Bearer {token.value}"}
            try:
                response = await self._http.post(url, headers=headers, **kwargs)
            except httpx.HTTPError as e:
                raise StorageError(f"Request to {url} failed: {e}") from e

            if response.status_code == 401 and attempt == 0:
                logger.warning("Dropbox rejected access token, refreshing")
                self.token_manager.invalidate()
                continue
            break

        return response

    async def _rpc(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.api_url}/{endpoint}"
        response = await self._send(url, json=payload)
        if not response.is_success:
            raise StorageError(
                f"{endpoint} failed: HTTP {response.status_code} {_error_summary(response)}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise StorageError(f"{endpoint} returned invalid JSON") from e

    async def list_entries_recursive(self, root: str) -> list[StorageEntry]:
        """List every file under `root`, following the pagination cursor."""
        entries: list[StorageEntry] = []
        page = await self._rpc(
            "files/list_folder",
            {"path": root, "recursive": True},
        )
        while True:
            for item in page.get("entries", []):
                if item.get(".tag") != "file":
                    continue
                entries.append(
                    StorageEntry(
                        path=item["path_lower"],
                        name=item["name"],
                        modified_at=_parse_timestamp(item["server_modified"]),
                    )
                )
            if not page.get("has_more"):
                break
            page = await self._rpc(
                "files/list_folder/continue",
                {"cursor": page["cursor"]},
            )
        return entries

    async def download_bytes(self, path: str) -> bytes:
        url = f"{self.content_url}/files/download"
        response = await self._send(
            url,
            headers={"Dropbox-API-Arg": json.dumps({"path": path})},
        )
        if not response.is_success:
            raise StorageError(
                f"Download of {path} failed: HTTP {response.status_code} {_error_summary(response)}",
                status_code=response.status_code,
            )
        return response.content

    async def list_shared_links(self, path: str) -> list[str]:
        result = await self._rpc(
            "sharing/list_shared_links",
            {"path": path, "direct_only": True},
        )
        return [link["url"] for link in result.get("links", []) if link.get("url")]

    async def create_shared_link(self, path: str) -> str:
        url = f"{self.api_url}/sharing/create_shared_link_with_settings"
        response = await self._send(url, json={"path": path})
        if response.status_code == 409:
            # Created concurrently elsewhere: Dropbox reports the existing link
            existing = self._existing_link_from_conflict(response)
            if existing:
                return existing
        if not response.is_success:
            raise StorageError(
                f"Creating shared link for {path} failed: "
                f"HTTP {response.status_code} {_error_summary(response)}",
                status_code=response.status_code,
            )
        try:
            return response.json()["url"]
        except (ValueError, KeyError) as e:
            raise StorageError(f"Unexpected shared link response for {path}") from e

    @staticmethod
    def _existing_link_from_conflict(response: httpx.Response) -> str | None:
        try:
            error = response.json().get("error", {})
        except ValueError:
            return None
        if error.get(".tag") != "shared_link_already_exists":
            return None
        metadata = (error.get("shared_link_already_exists") or {}).get("metadata") or {}
        return metadata.get("url")
