from __future__ import annotations

from time import sleep
from typing import Literal
from urllib.parse import quote, urlencode

from psr.core.result import Err, Ok, Result
from psr.core.structured import (
    StrDict,
    as_obj_list,
    as_str_dict,
    get_bool,
    get_int,
    get_raw_str,
    get_str,
    get_table,
)
from psr.output.console import ConsoleProtocol, Style
from psr.platform.http import HttpClient, HttpError
from psr.services.release.credential import Credential
from psr.services.release.errors import ApiTimeoutError, RemoteOperationError
from psr.services.release.model import (
    MergeMethod,
    PageResult,
    PullRequest,
    RefStatus,
    Release,
    RepositoryContext,
    UserProfile,
)
from psr.services.release.timeouts import (
    PR_PAGE_SIZE,
    REF_STATUS_MAX_ATTEMPTS,
    REF_STATUS_POLL_SECONDS,
)

_MERGE_METHODS: frozenset[str] = frozenset({"merge", "squash", "rebase"})

PullState = Literal["open", "closed", "all"]


def _remote_error(operation: str, error: HttpError) -> RemoteOperationError:
    return RemoteOperationError(
        operation=operation,
        status=error.status,
        detail=error.message,
        url=error.url,
    )


def _unexpected(operation: str, url: str, what: str) -> RemoteOperationError:
    return RemoteOperationError(operation=operation, status=0, detail=what, url=url)


def _parse_pull(data: StrDict) -> PullRequest | None:
    number = get_int(data, "number")
    head = get_table(data, "head")
    base = get_table(data, "base")
    if number is None or head is None or base is None:
        return None

    head_ref = get_str(head, "ref")
    base_ref = get_str(base, "ref")
    if head_ref is None or base_ref is None:
        return None

    user = get_table(data, "user")
    merged = get_bool(data, "merged")
    if merged is None:
        merged = get_str(data, "merged_at") is not None

    return PullRequest(
        number=number,
        head_ref=head_ref,
        base_ref=base_ref,
        title=get_raw_str(data, "title") or "",
        body=get_raw_str(data, "body") or "",
        state=get_str(data, "state") or "open",
        merged=merged,
        html_url=get_str(data, "html_url") or "",
        author=get_str(user, "login") if user is not None else None,
    )


def _parse_release(data: StrDict) -> Release | None:
    release_id = get_int(data, "id")
    tag = get_str(data, "tag_name")
    if release_id is None or tag is None:
        return None
    return Release(
        id=release_id,
        tag_name=tag,
        name=get_raw_str(data, "name") or "",
        body=get_raw_str(data, "body") or "",
        draft=get_bool(data, "draft") or False,
        prerelease=get_bool(data, "prerelease") or False,
        html_url=get_str(data, "html_url") or "",
    )


def normalize_ref_status(state: str) -> RefStatus | None:
    match state.lower():
        case "pending":
            return "pending"
        case "success":
            return "success"
        case "failure" | "error":
            return "failure"
        case _:
            return None


class GitHubClient:
    """Authenticated client for one repository's REST endpoints.

    The context and credential are fixed at construction; every request
    URL is built from ``context.api_base_url``.
    """

    def __init__(
        self,
        *,
        context: RepositoryContext,
        credential: Credential,
        http: HttpClient,
        console: ConsoleProtocol | None = None,
    ) -> None:
        self.context = context
        self._credential = credential
        self._http = http
        self._console = console

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._credential.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _call(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        body: object | None = None,
        query: dict[str, str | int] | None = None,
    ) -> Result[object, HttpError]:
        url = self.context.api(path)
        if query:
            url = f"{url}?{urlencode(query)}"
        if self._console is not None and method != "GET":
            self._console.print(f"{method} {url} ({operation})", Style.DIM)
        return self._http.request_json(method, url, headers=self._headers(), body=body)

    def _get_object(self, path: str, *, operation: str) -> Result[StrDict, RemoteOperationError]:
        result = self._call("GET", path, operation=operation)
        if isinstance(result, Err):
            return Err(_remote_error(operation, result.error))
        data = as_str_dict(result.value)
        if data is None:
            return Err(_unexpected(operation, self.context.api(path), "unexpected payload"))
        return Ok(data)

    # -------------------------------------------------------------------------
    # Pull requests
    # -------------------------------------------------------------------------

    def _list_pulls(
        self,
        *,
        state: PullState,
        base: str | None,
        max_pages: int,
        operation: str,
    ) -> Result[PageResult[PullRequest], RemoteOperationError]:
        out: list[PullRequest] = []
        pages = 0
        for page in range(1, max(1, max_pages) + 1):
            query: dict[str, str | int] = {"state": state, "per_page": PR_PAGE_SIZE, "page": page}
            if base is not None:
                query["base"] = base

            result = self._call("GET", "pulls", operation=operation, query=query)
            if isinstance(result, Err):
                return Err(_remote_error(operation, result.error))

            items = as_obj_list(result.value)
            if items is None:
                return Err(_unexpected(operation, self.context.api("pulls"), "expected a list"))

            pages = page
            for item in items:
                d = as_str_dict(item)
                pr = _parse_pull(d) if d is not None else None
                if pr is not None:
                    out.append(pr)

            if len(items) < PR_PAGE_SIZE:
                return Ok(PageResult(items=tuple(out), pages=pages, truncated=False))

        return Ok(PageResult(items=tuple(out), pages=pages, truncated=True))

    def list_closed_pull_requests(
        self, *, base: str, max_pages: int
    ) -> Result[PageResult[PullRequest], RemoteOperationError]:
        return self._list_pulls(
            state="closed",
            base=base,
            max_pages=max_pages,
            operation="list closed pull requests",
        )

    def get_pull_request(self, number: int) -> Result[PullRequest, RemoteOperationError]:
        operation = f"get pull request #{number}"
        data = self._get_object(f"pulls/{number}", operation=operation)
        if isinstance(data, Err):
            return data
        pr = _parse_pull(data.value)
        if pr is None:
            return Err(_unexpected(operation, self.context.api(f"pulls/{number}"), "bad payload"))
        return Ok(pr)

    def find_pull_request(
        self,
        *,
        head: str,
        base: str,
        state: PullState = "open",
        max_pages: int = 10,
    ) -> Result[PullRequest | None, RemoteOperationError]:
        """Find a pull request whose head and base refs both match exactly."""
        listing = self._list_pulls(
            state=state,
            base=base,
            max_pages=max_pages,
            operation=f"find pull request {head} -> {base}",
        )
        if isinstance(listing, Err):
            return listing
        for pr in listing.value.items:
            if pr.head_ref == head and pr.base_ref == base:
                return Ok(pr)
        return Ok(None)

    def create_pull_request(
        self,
        *,
        title: str,
        body: str,
        head: str,
        base: str,
    ) -> Result[PullRequest, RemoteOperationError]:
        operation = f"create pull request {head} -> {base}"
        result = self._call(
            "POST",
            "pulls",
            operation=operation,
            body={"title": title, "body": body, "head": head, "base": base},
        )
        if isinstance(result, Err):
            return Err(_remote_error(operation, result.error))

        data = as_str_dict(result.value)
        pr = _parse_pull(data) if data is not None else None
        if pr is None:
            return Err(_unexpected(operation, self.context.api("pulls"), "bad payload"))
        return Ok(pr)

    def approve_pull_request(
        self,
        number: int,
        *,
        commit_title: str,
        commit_message: str,
        merge_method: MergeMethod | str,
    ) -> Result[PullRequest, RemoteOperationError]:
        """Merge the pull request, then return its refreshed projection."""
        operation = f"merge pull request #{number}"
        method = merge_method.lower()
        if method not in _MERGE_METHODS:
            return Err(
                _unexpected(
                    operation,
                    self.context.api(f"pulls/{number}/merge"),
                    f"unsupported merge method: {merge_method}",
                )
            )

        result = self._call(
            "PUT",
            f"pulls/{number}/merge",
            operation=operation,
            body={
                "commit_title": commit_title,
                "commit_message": commit_message,
                "merge_method": method,
            },
        )
        if isinstance(result, Err):
            return Err(_remote_error(operation, result.error))

        return self.get_pull_request(number)

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def get_ref_status(
        self,
        ref: str,
        *,
        wait_for_success: bool,
        poll_seconds: float = REF_STATUS_POLL_SECONDS,
        max_attempts: int = REF_STATUS_MAX_ATTEMPTS,
    ) -> Result[RefStatus, RemoteOperationError | ApiTimeoutError]:
        """Read the combined status of ``ref``.

        Without ``wait_for_success`` the first observation is returned, pending
        included. With it, pending is polled every ``poll_seconds`` for at most
        ``max_attempts`` observations. success and failure always return at once.
        """
        operation = f"get status of {ref}"
        path = f"commits/{quote(ref, safe='')}/status"
        attempts = max(1, max_attempts)
        waited = 0.0

        for attempt in range(1, attempts + 1):
            data = self._get_object(path, operation=operation)
            if isinstance(data, Err):
                return data

            raw_state = get_str(data.value, "state") or ""
            state = normalize_ref_status(raw_state)
            if state is None:
                return Err(
                    _unexpected(operation, self.context.api(path), f"unknown state: {raw_state}")
                )

            if state != "pending" or not wait_for_success:
                return Ok(state)

            if attempt == attempts:
                break

            if self._console is not None:
                self._console.print(
                    f"{ref}: pending ({attempt}/{attempts}); next check in {poll_seconds:.0f}s",
                    Style.DIM,
                )
            sleep(poll_seconds)
            waited += poll_seconds

        return Err(ApiTimeoutError(ref=ref, attempts=attempts, elapsed_seconds=waited))

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    def get_user(self, login: str) -> Result[UserProfile, RemoteOperationError]:
        operation = f"get user {login}"
        api_root = self.context.api_base_url.split("/repos/", 1)[0]
        url = f"{api_root}/users/{quote(login, safe='')}"
        result = self._http.request_json("GET", url, headers=self._headers())
        if isinstance(result, Err):
            return Err(_remote_error(operation, result.error))

        data = as_str_dict(result.value)
        found = get_str(data, "login") if data is not None else None
        if data is None or found is None:
            return Err(_unexpected(operation, url, "bad payload"))
        return Ok(UserProfile(login=found, name=get_str(data, "name")))

    # -------------------------------------------------------------------------
    # Releases
    # -------------------------------------------------------------------------

    def _optional_release(
        self, path: str, *, operation: str
    ) -> Result[Release | None, RemoteOperationError]:
        result = self._call("GET", path, operation=operation)
        if isinstance(result, Err):
            if result.error.status == 404:
                return Ok(None)
            return Err(_remote_error(operation, result.error))

        data = as_str_dict(result.value)
        release = _parse_release(data) if data is not None else None
        if release is None:
            return Err(_unexpected(operation, self.context.api(path), "bad payload"))
        return Ok(release)

    def latest_release(self) -> Result[Release | None, RemoteOperationError]:
        return self._optional_release("releases/latest", operation="get latest release")

    def get_release_by_tag(self, tag: str) -> Result[Release | None, RemoteOperationError]:
        return self._optional_release(
            f"releases/tags/{quote(tag, safe='')}", operation=f"get release {tag}"
        )

    def create_release(
        self,
        *,
        tag_name: str,
        title: str,
        description: str,
        draft: bool,
        prerelease: bool,
        target: str | None = None,
    ) -> Result[Release, RemoteOperationError]:
        operation = f"create release {tag_name}"
        body: dict[str, object] = {
            "tag_name": tag_name,
            "name": title,
            "body": description,
            "draft": draft,
            "prerelease": prerelease,
        }
        if target is not None:
            body["target_commitish"] = target

        result = self._call("POST", "releases", operation=operation, body=body)
        if isinstance(result, Err):
            return Err(_remote_error(operation, result.error))

        data = as_str_dict(result.value)
        release = _parse_release(data) if data is not None else None
        if release is None:
            return Err(_unexpected(operation, self.context.api("releases"), "bad payload"))
        return Ok(release)
