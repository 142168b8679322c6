"""
TitleDesk Backend — Microsoft Graph (OneDrive) Client
=======================================================

What:  Thin async wrapper over the OneDrive endpoints of Microsoft Graph.
How:   One httpx.AsyncClient per request, authorized with the delegated
       token the dashboard obtained from Microsoft. Used as an async
       context manager:

           async with GraphClient(token) as graph:
               folder = await graph.ensure_path(["Root", "2024-2025", "May"])

Error mapping (see CloudStorageError):
    Graph 401 → 401 (token expired, dashboard must re-authenticate)
    Graph 404 → 404
    anything else non-2xx or a transport failure → 502

Copy polling:
    Graph copies run asynchronously (202 Accepted). wait_for_item() polls
    the target path with tenacity until the copy shows up or the attempts
    run out (settings.retry_max_attempts, exponential backoff).
"""

import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from titledesk.config import settings
from titledesk.exceptions import CloudStorageError

logger = logging.getLogger(__name__)

# Graph accepts single-request PUT uploads up to 4MB; larger files use an
# upload session with chunks that are multiples of 320 KiB.
SIMPLE_UPLOAD_LIMIT = 4 * 1024 * 1024
UPLOAD_CHUNK_SIZE = 320 * 1024 * 16


class ItemNotReady(Exception):
    """The copied item is not visible at its target path yet."""


def encode_path(segments: Sequence[str]) -> str:
    return "/".join(quote(s.strip("/"), safe="") for s in segments if s and s.strip("/"))


class GraphClient:
    def __init__(
        self,
        token: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=(base_url or settings.graph_base_url).rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout or settings.graph_timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> "GraphClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Transport ─────────────────────────────────────────────────────────

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Graph %s %s failed: %s", method, url, e)
            raise CloudStorageError(
                message="Could not reach OneDrive. Please try again.",
                context={"method": method, "url": url, "error": str(e)},
            )
        if response.is_success:
            return response

        detail = self._error_message(response)
        logger.warning("Graph %s %s returned %d: %s", method, url, response.status_code, detail)
        if response.status_code == 401:
            raise CloudStorageError(
                message="OneDrive session expired. Please sign in to Microsoft again.",
                status_code=401,
            )
        if response.status_code == 404:
            raise CloudStorageError(message=f"OneDrive item not found: {detail}", status_code=404)
        raise CloudStorageError(
            message=f"OneDrive request failed: {detail}",
            context={"graph_status": response.status_code},
        )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            return response.json().get("error", {}).get("message") or response.text
        except ValueError:
            return response.text or response.reason_phrase

    # ── Items ─────────────────────────────────────────────────────────────

    async def get_item(self, item_id: str) -> Dict[str, Any]:
        response = await self._request("GET", f"/me/drive/items/{item_id}")
        return response.json()

    async def get_item_by_path(self, segments: Sequence[str]) -> Optional[Dict[str, Any]]:
        """Item at a drive-relative path, or None when it does not exist."""
        path = encode_path(segments)
        if not path:
            response = await self._request("GET", "/me/drive/root")
            return response.json()
        try:
            response = await self._request("GET", f"/me/drive/root:/{path}")
        except CloudStorageError as e:
            if e.status_code == 404:
                return None
            raise
        return response.json()

    async def list_children(
        self,
        folder_id: Optional[str] = None,
        path: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        if folder_id:
            url = f"/me/drive/items/{folder_id}/children"
        elif path and encode_path(path):
            url = f"/me/drive/root:/{encode_path(path)}:/children"
        else:
            url = "/me/drive/root/children"

        items: List[Dict[str, Any]] = []
        params: Optional[Dict[str, Any]] = {"$top": 200}
        while url:
            response = await self._request("GET", url, params=params)
            data = response.json()
            items.extend(data.get("value", []))
            # nextLink is absolute and already carries the query string
            url = data.get("@odata.nextLink")
            params = None
        return items

    async def search(self, query: str) -> List[Dict[str, Any]]:
        escaped = query.replace("'", "''")
        response = await self._request("GET", f"/me/drive/root/search(q='{quote(escaped)}')")
        return response.json().get("value", [])

    async def download(self, item_id: str) -> httpx.Response:
        return await self._request("GET", f"/me/drive/items/{item_id}/content")

    # ── Folders ───────────────────────────────────────────────────────────

    async def create_folder(
        self,
        name: str,
        parent_id: Optional[str] = None,
        conflict_behavior: str = "rename",
    ) -> Dict[str, Any]:
        url = f"/me/drive/items/{parent_id}/children" if parent_id else "/me/drive/root/children"
        response = await self._request(
            "POST",
            url,
            json={
                "name": name,
                "folder": {},
                "@microsoft.graph.conflictBehavior": conflict_behavior,
            },
        )
        return response.json()

    async def ensure_path(self, segments: Sequence[str]) -> Dict[str, Any]:
        """
        Return the folder at `segments`, creating any missing levels.

        Walks the path top-down: existing folders are reused, missing ones
        are created under their parent.
        """
        parent = await self.get_item_by_path([])
        walked: List[str] = []
        for segment in [s for s in segments if s and s.strip("/")]:
            walked.append(segment)
            existing = await self.get_item_by_path(walked)
            if existing is not None:
                parent = existing
                continue
            logger.info("Creating OneDrive folder %s", "/".join(walked))
            parent = await self.create_folder(segment, parent_id=parent["id"], conflict_behavior="fail")
        return parent

    # ── Files ─────────────────────────────────────────────────────────────

    async def upload(
        self,
        parent_id: str,
        name: str,
        content: bytes,
        conflict_behavior: str = "replace",
    ) -> Dict[str, Any]:
        """Upload bytes as `name` into a folder; large files use an upload session."""
        target = f"/me/drive/items/{parent_id}:/{quote(name, safe='')}:"
        if len(content) <= SIMPLE_UPLOAD_LIMIT:
            response = await self._request(
                "PUT",
                f"{target}/content",
                params={"@microsoft.graph.conflictBehavior": conflict_behavior},
                content=content,
                headers={"Content-Type": "application/octet-stream"},
            )
            return response.json()

        session = await self._request(
            "POST",
            f"{target}/createUploadSession",
            json={"item": {"@microsoft.graph.conflictBehavior": conflict_behavior}},
        )
        upload_url = session.json()["uploadUrl"]
        total = len(content)
        result: Dict[str, Any] = {}
        for start in range(0, total, UPLOAD_CHUNK_SIZE):
            chunk = content[start:start + UPLOAD_CHUNK_SIZE]
            end = start + len(chunk) - 1
            # uploadUrl is pre-authenticated and must be sent without the
            # client's Authorization header; send() skips the default headers
            request = httpx.Request(
                "PUT",
                upload_url,
                content=chunk,
                headers={"Content-Range": f"bytes {start}-{end}/{total}"},
            )
            try:
                response = await self._client.send(request)
            except httpx.HTTPError as e:
                raise CloudStorageError(message="OneDrive upload interrupted", context={"error": str(e)})
            if not response.is_success:
                raise CloudStorageError(
                    message=f"OneDrive upload failed: {self._error_message(response)}",
                    context={"graph_status": response.status_code},
                )
            if response.status_code in (200, 201):
                result = response.json()
        return result

    async def copy(
        self,
        item_id: str,
        parent: Dict[str, Any],
        name: str,
    ) -> None:
        """Start an asynchronous copy of `item_id` into `parent` as `name`."""
        reference: Dict[str, Any] = {"id": parent["id"]}
        drive_id = (parent.get("parentReference") or {}).get("driveId")
        if drive_id:
            reference["driveId"] = drive_id
        await self._request(
            "POST",
            f"/me/drive/items/{item_id}/copy",
            json={"parentReference": reference, "name": name},
        )

    @retry(
        retry=retry_if_exception_type(ItemNotReady),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential(multiplier=1, min=settings.retry_min_wait, max=settings.retry_max_wait),
        before_sleep=before_sleep_log(logger, logging.INFO),
        reraise=True,
    )
    async def wait_for_item(self, segments: Sequence[str]) -> Dict[str, Any]:
        item = await self.get_item_by_path(segments)
        if item is None:
            raise ItemNotReady("/".join(segments))
        return item
