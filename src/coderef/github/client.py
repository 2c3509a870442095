"""File content provider backed by the GitHub contents API."""

from __future__ import annotations

import base64
import binascii
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from coderef.extraction.models import FileContent

if TYPE_CHECKING:
    from coderef.config.models import GitHubConfig

log = structlog.get_logger(__name__)


class GitHubContentError(Exception):
    """Contents API returned an unexpected response."""

    def __init__(self, path: str, status_code: int, detail: str = "") -> None:
        suffix = f": {detail}" if detail else ""
        super().__init__(f"GitHub contents request for {path} failed with {status_code}{suffix}")
        self.path = path
        self.status_code = status_code


class GitHubContentProvider:
    """``GET /repos/{owner}/{repo}/contents/{path}?ref=...``.

    Returns None for missing files and for directories. Other non-success
    responses raise GitHubContentError.
    """

    def __init__(
        self,
        *,
        api_url: str = "https://api.github.com",
        token: str | None = None,
        timeout_sec: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout_sec
        self._headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"
        self._client = client

    @classmethod
    def from_config(cls, config: GitHubConfig) -> GitHubContentProvider:
        return cls(api_url=config.api_url, token=config.token, timeout_sec=config.timeout_sec)

    async def _get(self, url: str, params: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, params=params, headers=self._headers, timeout=self._timeout)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.get(url, params=params, headers=self._headers)

    async def get_file_content(
        self, owner: str, repo: str, path: str, ref: str | None = None
    ) -> FileContent | None:
        url = f"{self._api_url}/repos/{owner}/{repo}/contents/{path.lstrip('/')}"
        params = {"ref": ref} if ref else {}
        response = await self._get(url, params)
        if response.status_code == 404:
            log.debug("github_file_missing", owner=owner, repo=repo, path=path, ref=ref)
            return None
        if not response.is_success:
            raise GitHubContentError(path, response.status_code, response.text[:200])

        data: Any = response.json()
        if isinstance(data, list) or data.get("type") != "file":
            log.debug("github_path_not_file", owner=owner, repo=repo, path=path)
            return None
        return FileContent(content=_decode(path, data), sha=data.get("sha", ""))


def _decode(path: str, data: dict[str, Any]) -> str:
    if data.get("encoding") != "base64":
        return data.get("content") or ""
    try:
        raw = base64.b64decode(data.get("content", ""))
    except binascii.Error as e:
        raise GitHubContentError(path, 200, f"undecodable content ({e})") from e
    return raw.decode("utf-8", errors="replace")
