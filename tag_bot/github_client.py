"""Minimal GitHub REST client covering the endpoints the tag bot consumes.

The client performs single requests only. Retrying is the caller's job (see
:mod:`tag_bot.retry`), so transport errors propagate unchanged and HTTP
failures surface as :class:`~tag_bot.errors.GitHubAPIError`.
"""

from __future__ import annotations

import dataclasses
import logging
import typing as typ
import urllib.parse

import httpx

from .errors import GitHubAPIError, ValidationError
from .validation import validate_github_response, validate_token

__all__ = ["GITHUB_API_URL", "GitHubClient", "Tagger"]

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
_API_VERSION = "2022-11-28"
_USER_AGENT = "tag-bot-action"
_PAGE_SIZE = 100
_MAX_PAGES = 50
_ERROR_DETAIL_LIMIT = 1024

type JsonObject = dict[str, typ.Any]


@dataclasses.dataclass(frozen=True, slots=True)
class Tagger:
    """Identity recorded on annotated tags."""

    name: str = "github-actions[bot]"
    email: str = "41898282+github-actions[bot]@users.noreply.github.com"

    def as_payload(self, date: str) -> dict[str, str]:
        """Return the ``tagger`` object for the git tags endpoint."""
        return {"name": self.name, "email": self.email, "date": date}


def _truncate_text(value: str, limit: int, *, suffix: str = "…") -> str:
    """Return ``value`` truncated to ``limit`` characters with ``suffix``."""
    if limit <= 0:
        return ""
    if len(value) <= limit:
        return value
    return value[:limit] + suffix


def _extract_error_detail(response: httpx.Response) -> str:
    """Return GitHub's error message, falling back to the raw body."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        detail = payload["message"]
    else:
        detail = response.text.strip() or response.reason_phrase or ""
    return _truncate_text(detail, _ERROR_DETAIL_LIMIT)


def _quote(segment: str) -> str:
    return urllib.parse.quote(segment, safe="")


class GitHubClient:
    """Thin synchronous wrapper over the GitHub REST API.

    Parameters
    ----------
    token
        Token sent as a bearer credential.
    base_url
        API root; override for GitHub Enterprise Server.
    timeout
        Per-request timeout in seconds.
    transport
        Optional httpx transport, used by tests to serve canned responses.
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = GITHUB_API_URL,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {
            "Authorization": f"Bearer {validate_token(token)}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": _API_VERSION,
            "User-Agent": _USER_AGENT,
        }
        self._client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def __enter__(self) -> typ.Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: object,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Release the underlying connection pool."""
        self._client.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        context: str,
        params: dict[str, typ.Any] | None = None,
        json: JsonObject | None = None,
    ) -> typ.Any:  # noqa: ANN401
        logger.debug("%s %s", method, path)
        response = self._client.request(method, path, params=params, json=json)
        if not response.is_success:
            detail = _extract_error_detail(response) or "Unknown error"
            msg = f"{context} failed with status {response.status_code}: {detail}"
            raise GitHubAPIError(
                msg, status=response.status_code, headers=dict(response.headers)
            )
        try:
            payload = response.json()
        except ValueError as exc:
            preview = _truncate_text(response.text, 500, suffix="...")
            msg = f"{context}: GitHub API returned invalid JSON: {preview}"
            raise ValidationError(msg) from exc
        return validate_github_response(payload, context)

    def _paginate(self, path: str, *, context: str) -> list[JsonObject]:
        items: list[JsonObject] = []
        for page in range(1, _MAX_PAGES + 1):
            batch = self._request(
                "GET",
                path,
                context=context,
                params={"per_page": _PAGE_SIZE, "page": page},
            )
            if not isinstance(batch, list):
                msg = f"{context}: expected a list, got {type(batch).__name__}"
                raise ValidationError(msg)
            items.extend(batch)
            if len(batch) < _PAGE_SIZE:
                break
        else:
            logger.warning(
                "%s: stopped after %d pages of %d; later results were not read",
                context,
                _MAX_PAGES,
                _PAGE_SIZE,
            )
        return items

    def _repo_path(self, owner: str, repo: str) -> str:
        return f"/repos/{_quote(owner)}/{_quote(repo)}"

    def list_tags(self, owner: str, repo: str) -> list[JsonObject]:
        """Return every tag as ``{"name": ..., "commit": {"sha": ...}}``."""
        return self._paginate(
            f"{self._repo_path(owner, repo)}/tags", context="List tags"
        )

    def list_comments(
        self, owner: str, repo: str, issue_number: int
    ) -> list[JsonObject]:
        """Return the pull request's issue comments in GitHub's order."""
        return self._paginate(
            f"{self._repo_path(owner, repo)}/issues/{issue_number}/comments",
            context="List comments",
        )

    def create_tag(
        self,
        owner: str,
        repo: str,
        *,
        tag: str,
        message: str,
        object_sha: str,
        tagger: JsonObject,
    ) -> JsonObject:
        """Create an annotated tag object pointing at ``object_sha``."""
        return self._request(
            "POST",
            f"{self._repo_path(owner, repo)}/git/tags",
            context=f"Create tag {tag}",
            json={
                "tag": tag,
                "message": message,
                "object": object_sha,
                "type": "commit",
                "tagger": tagger,
            },
        )

    def create_ref(self, owner: str, repo: str, *, ref: str, sha: str) -> JsonObject:
        """Create ``ref`` (for example ``refs/tags/v1.2.3``) at ``sha``."""
        return self._request(
            "POST",
            f"{self._repo_path(owner, repo)}/git/refs",
            context=f"Create ref {ref}",
            json={"ref": ref, "sha": sha},
        )

    def get_combined_status_for_ref(
        self, owner: str, repo: str, ref: str
    ) -> JsonObject:
        """Return the combined commit status for ``ref``."""
        return self._request(
            "GET",
            f"{self._repo_path(owner, repo)}/commits/{_quote(ref)}/status",
            context=f"Get combined status for {ref}",
        )

    def get_branch_protection(
        self, owner: str, repo: str, branch: str
    ) -> JsonObject:
        """Return the protection rules of ``branch``; 404 when unprotected."""
        return self._request(
            "GET",
            f"{self._repo_path(owner, repo)}/branches/{_quote(branch)}/protection",
            context=f"Get branch protection for {branch}",
        )

    def get_pull_request(self, owner: str, repo: str, number: int) -> JsonObject:
        """Return pull request ``number``."""
        return self._request(
            "GET",
            f"{self._repo_path(owner, repo)}/pulls/{number}",
            context=f"Get pull request #{number}",
        )
