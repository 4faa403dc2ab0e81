from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from psr.core.result import Err, Ok, Result
from psr.services.release.artifacts import newline_of
from psr.services.release.errors import RemoteOperationError
from psr.services.release.github import GitHubClient
from psr.services.release.model import ContributorRecord

_CONTRIBUTORS_HEADER_RE = re.compile(r"(?im)^##[ \t]*contributors[ \t]*(?=\r?$)")
_NEXT_SECTION_RE = re.compile(r"(?m)^##[ \t]")


@dataclass(frozen=True, slots=True)
class ContributorList:
    records: tuple[ContributorRecord, ...]
    # True when the closed pull request listing hit its page bound.
    truncated: bool


def aggregate_contributors(
    *,
    api_logins: Iterable[str],
    allowlist: Iterable[tuple[str, str]],
    display_names: Mapping[str, str] | None = None,
) -> list[ContributorRecord]:
    """Union of API-reported logins and the allowlist, sorted by login.

    Sorting is case-sensitive ordinal. An API display name wins over the
    allowlist one; a login with no known name displays as itself.
    """
    names = dict(display_names or {})
    merged: dict[str, str] = {}
    for login, name in allowlist:
        merged[login] = names.get(login) or name or login
    for login in api_logins:
        if login not in merged:
            merged[login] = names.get(login) or login
    return sorted(ContributorRecord(login=k, display_name=v) for k, v in merged.items())


def collect_contributors(
    *,
    client: GitHubClient,
    base: str,
    allowlist: Iterable[tuple[str, str]],
    max_pages: int,
) -> Result[ContributorList, RemoteOperationError]:
    listing = client.list_closed_pull_requests(base=base, max_pages=max_pages)
    if isinstance(listing, Err):
        return listing

    allowed = tuple(allowlist)
    known = {login for login, _ in allowed}
    logins = sorted({pr.author for pr in listing.value.items if pr.author is not None})

    display_names: dict[str, str] = {}
    for login in logins:
        if login in known or login.endswith("[bot]"):
            continue
        user = client.get_user(login)
        if isinstance(user, Err):
            return user
        if user.value.name:
            display_names[login] = user.value.name

    records = aggregate_contributors(
        api_logins=[login for login in logins if not login.endswith("[bot]")],
        allowlist=allowed,
        display_names=display_names,
    )
    return Ok(ContributorList(records=tuple(records), truncated=listing.value.truncated))


def render_contributor_markdown(
    records: Iterable[ContributorRecord], *, host: str, newline: str = "\n"
) -> str:
    lines: list[str] = []
    for r in records:
        suffix = f" ({r.display_name})" if r.display_name != r.login else ""
        lines.append(f"* [@{r.login}](https://{host}/{r.login}){suffix}")
    return newline.join(lines)


def update_readme_contributors(readme: str, markdown: str) -> str | None:
    """Replace the body of the ``## Contributors`` section.

    The new body takes the README's own line ending. Returns None when the
    README has no such section.
    """
    header = _CONTRIBUTORS_HEADER_RE.search(readme)
    if header is None:
        return None

    newline = newline_of(readme)
    body = newline.join(markdown.rstrip().splitlines())
    start = header.end()
    following = _NEXT_SECTION_RE.search(readme, start)
    end = following.start() if following is not None else len(readme)
    tail = newline * 2 if following is not None else newline
    return readme[:start] + newline * 2 + body + tail + readme[end:]
