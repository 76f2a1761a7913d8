"""
GitHub API client.
Searches for project repositories and reads their health signals.
"""
import base64
import logging
import re
import httpx
from typing import Optional, Dict, Any
from riskintel.core.config import settings

logger = logging.getLogger("riskintel.services.github")

LAST_PAGE_PATTERN = re.compile(r'page=(\d+)>; rel="last"')


class GitHubClient:
    """Client for the GitHub REST API (repository search, contributors, README)."""

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or settings.github_api_url).rstrip("/")
        self.token = settings.github_token if token is None else token
        self.timeout = timeout or settings.github_timeout

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "riskintel-engine",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[httpx.Response]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, headers=self._headers()) as client:
                response = await client.get(f"{self.base_url}{path}", params=params)
                if response.status_code != 200:
                    return None
                return response
        except httpx.HTTPError as e:
            logger.warning("GitHub request %s failed: %s", path, e)
            return None

    async def search_repository(self, query: str) -> Optional[Dict[str, Any]]:
        """
        Search repositories and return the top hit.

        Returns:
            {full_name, repo_url, last_commit_date, stars_count} or None
        """
        response = await self._get(
            "/search/repositories",
            params={"q": query, "sort": "stars", "per_page": 3},
        )
        if response is None:
            return None

        items = response.json().get("items") or []
        if not items:
            return None

        repo = items[0]
        return {
            "full_name": repo.get("full_name"),
            "repo_url": repo.get("html_url"),
            "last_commit_date": repo.get("pushed_at"),
            "stars_count": repo.get("stargazers_count"),
        }

    async def get_contributor_count(self, full_name: str) -> int:
        """Count contributors from the pagination header of a 1-per-page listing."""
        response = await self._get(f"/repos/{full_name}/contributors", params={"per_page": 1})
        if response is None:
            return 0

        link_header = response.headers.get("link")
        if link_header:
            match = LAST_PAGE_PATTERN.search(link_header)
            return int(match.group(1)) if match else 1

        contributors = response.json()
        return len(contributors) if isinstance(contributors, list) else 0

    async def get_readme(self, full_name: str) -> Optional[str]:
        """Decoded README text, if the repository has one."""
        response = await self._get(f"/repos/{full_name}/readme")
        if response is None:
            return None

        content = response.json().get("content")
        if not content:
            return None
        return base64.b64decode(content).decode("utf-8", errors="replace")
