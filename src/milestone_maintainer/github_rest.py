from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import requests

from .models import milestone_key
from .retry import RetryConfig, run_with_retries

DEFAULT_API_URL = "https://api.github.com"
USER_AGENT = "milestone-maintainer/0.1.0"
HTTP_ERROR_STATUS = 400
HTTP_NOT_FOUND = 404
REQUEST_TIMEOUT = 30


class GitHubAPIError(RuntimeError):
    """Raised when the GitHub REST API returns an error."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_text = response_text


@dataclass
class GitHubRestClient:
    """Lightweight REST client for the issue operations the maintainer needs."""

    token: str
    repo: str
    base_url: str = DEFAULT_API_URL
    session: requests.Session | None = None
    retry: RetryConfig | None = None
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._session = self.session or requests.Session()
        self._session.headers.setdefault("Authorization", f"Bearer {self.token}")
        self._session.headers.setdefault("Accept", "application/vnd.github+json")
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    # ---- REST helpers -------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Any:
        url = (
            path
            if path.startswith("http")
            else f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        )

        def _run() -> Any:
            try:
                response = self._session.request(
                    method,
                    url,
                    params=params,
                    json=json_body,
                    headers=self._session.headers,
                    timeout=REQUEST_TIMEOUT,
                )
            except requests.RequestException as exc:
                raise GitHubAPIError(f"GitHub API {method} {url} failed: {exc}") from exc
            if response.status_code >= HTTP_ERROR_STATUS:
                raise GitHubAPIError(
                    f"GitHub API {method} {url} failed with {response.status_code}",
                    status=response.status_code,
                    response_text=response.text,
                )
            return response

        response = run_with_retries(_run, cfg=self.retry, retry_on=(GitHubAPIError,))
        if response.text:
            try:
                return response.json()
            except ValueError:  # pragma: no cover - defensive
                return response.text
        return None

    def _paginate(
        self, path: str, *, params: dict[str, Any] | None = None
    ) -> list[Any]:
        params = dict(params or {})
        per_page = params.setdefault("per_page", 100)
        params.setdefault("page", 1)
        results: list[Any] = []
        while True:
            data = self._request("GET", path, params=params)
            if not isinstance(data, list):
                break
            results.extend(data)
            if len(data) < per_page:
                break
            params["page"] = params.get("page", 1) + 1
        return results

    def _issue_path(self, number: int) -> str:
        return f"/repos/{self.repo}/issues/{number}"

    # ---- Reads --------------------------------------------------------
    def find_milestone(self, title: str) -> int | None:
        """Number of the milestone called ``title`` (case-insensitive)."""
        wanted = milestone_key(title)
        milestones = self._paginate(f"/repos/{self.repo}/milestones", params={"state": "all"})
        for entry in milestones:
            if not isinstance(entry, dict):
                continue
            entry_title = entry.get("title")
            if isinstance(entry_title, str) and milestone_key(entry_title) == wanted:
                number = entry.get("number")
                if isinstance(number, int):
                    return number
        return None

    def list_issues(
        self, *, milestone: int | str | None = None, state: str = "open"
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"state": state, "per_page": 100, "page": 1}
        if milestone is not None:
            params["milestone"] = milestone
        data = self._paginate(f"/repos/{self.repo}/issues", params=params)
        return [entry for entry in data if isinstance(entry, dict)]

    def get_issue(self, number: int) -> dict[str, Any]:
        data = self._request("GET", self._issue_path(number))
        if not isinstance(data, dict):
            raise GitHubAPIError(f"unexpected payload for issue #{number}")
        return data

    def list_issue_events(self, number: int) -> list[dict[str, Any]]:
        data = self._paginate(f"{self._issue_path(number)}/events")
        return [entry for entry in data if isinstance(entry, dict)]

    def list_issue_comments(self, number: int) -> list[dict[str, Any]]:
        data = self._paginate(f"{self._issue_path(number)}/comments")
        return [entry for entry in data if isinstance(entry, dict)]

    # ---- Writes -------------------------------------------------------
    def create_comment(self, number: int, body: str) -> dict[str, Any] | None:
        data = self._request("POST", f"{self._issue_path(number)}/comments", json_body={"body": body})
        return data if isinstance(data, dict) else None

    def delete_comment(self, comment_id: int) -> None:
        self._request("DELETE", f"/repos/{self.repo}/issues/comments/{comment_id}")

    def add_labels(self, number: int, labels: Iterable[str]) -> None:
        self._request(
            "POST", f"{self._issue_path(number)}/labels", json_body={"labels": list(labels)}
        )

    def remove_label(self, number: int, label: str) -> None:
        try:
            self._request("DELETE", f"{self._issue_path(number)}/labels/{quote(label, safe='')}")
        except GitHubAPIError as exc:
            # Already gone
            if exc.status != HTTP_NOT_FOUND:
                raise

    def clear_milestone(self, number: int) -> None:
        self._request("PATCH", self._issue_path(number), json_body={"milestone": None})


__all__ = [
    "DEFAULT_API_URL",
    "GitHubAPIError",
    "GitHubRestClient",
]
