"""Jira REST API v2 tracker."""

from collections.abc import Mapping, Sequence
from datetime import datetime

import httpx

from cmq.models import Comment, Issue, Priority
from cmq.providers.base import IssueTracker, TrackerError
from cmq.queues import IssueFilter, SortKey, order_jql
from cmq.settings import CmqSettings

API_PATH = "/rest/api/2"
PAGE_SIZE = 100

_JIRA_DATETIME = "%Y-%m-%dT%H:%M:%S.%f%z"  # 2024-06-01T10:15:30.000+0000


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.strptime(value, _JIRA_DATETIME)


class JiraTracker(IssueTracker):
    def __init__(self, settings: CmqSettings) -> None:
        if not (settings.jira_url and settings.jira_user and settings.jira_password):
            raise RuntimeError("jira_url, jira_user and jira_password are required")
        self._base_url = settings.jira_url.rstrip("/") + API_PATH
        self._auth = (settings.jira_user, settings.jira_password.get_secret_value())
        self._settings = settings
        self._fields = [
            "issuetype",
            "status",
            "labels",
            "priority",
            "votes",
            "security",
            "components",
            "comment",
            settings.must_fix_versions_field,
            settings.integration_flag_field,
            settings.integration_priority_field,
            settings.last_comment_date_field,
        ]

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = httpx.request(
                method,
                f"{self._base_url}{path}",
                auth=self._auth,
                headers={"Accept": "application/json"},
                timeout=30,
                **kwargs,
            )
        except httpx.TransportError as exc:
            raise TrackerError(f"Jira unreachable: {method} {path}: {exc}") from exc
        if response.status_code == 401:
            raise TrackerError("Jira API returned 401. Check jira_user / jira_password for the active profile.")
        if response.is_error:
            raise TrackerError(f"Jira API {method} {path} failed with {response.status_code}: {response.text[:200]}")
        return response

    def _issue_from_node(self, node: dict) -> Issue:
        fields = node["fields"]
        s = self._settings
        comments = tuple(
            Comment(body=c.get("body") or "", created=_parse_datetime(c.get("created")))
            for c in (fields.get("comment") or {}).get("comments", [])
        )
        must_fix = [v["name"] for v in fields.get(s.must_fix_versions_field) or []]
        priority = fields.get("priority")
        rank = fields.get(s.integration_priority_field)
        last_comment = _parse_datetime(fields.get(s.last_comment_date_field))
        if last_comment is None and comments:
            last_comment = comments[-1].created
        return Issue(
            id=node["key"],
            type=fields["issuetype"]["name"],
            status=fields["status"]["name"],
            priority=Priority.from_name(priority["name"]) if priority else Priority.MAJOR,
            labels=frozenset(fields.get("labels") or []),
            votes=(fields.get("votes") or {}).get("votes", 0),
            must_fix_version=", ".join(must_fix) or None,
            security_level=(fields.get("security") or {}).get("name"),
            components=tuple(c["name"] for c in fields.get("components") or []),
            comments=comments,
            # "IS NOT EMPTY" semantics: any value on the flag field counts
            in_integration=bool(fields.get(s.integration_flag_field)),
            integration_priority=int(rank) if rank is not None else None,
            last_comment_date=last_comment,
        )

    def search(
        self,
        issue_filter: IssueFilter,
        order_by: Sequence[SortKey] = (),
        limit: int | None = None,
    ) -> list[Issue]:
        jql = issue_filter.jql
        if order_by:
            jql = f"{jql} ORDER BY {order_jql(order_by)}"

        result: list[Issue] = []
        while limit is None or len(result) < limit:
            page_size = PAGE_SIZE if limit is None else min(PAGE_SIZE, limit - len(result))
            data = self._request(
                "POST",
                "/search",
                json={"jql": jql, "startAt": len(result), "maxResults": page_size, "fields": self._fields},
            ).json()
            nodes = data.get("issues", [])
            try:
                result.extend(self._issue_from_node(node) for node in nodes)
            except (KeyError, TypeError, ValueError) as exc:
                raise TrackerError(f"Unexpected issue payload for {issue_filter.name}: {exc}") from exc
            if not nodes or len(result) >= data.get("total", 0):
                break
        return result

    def add_label(self, issue_id: str, label: str) -> None:
        self._request("PUT", f"/issue/{issue_id}", json={"update": {"labels": [{"add": label}]}})

    def add_comment(self, issue_id: str, body: str) -> None:
        self._request("POST", f"/issue/{issue_id}/comment", json={"body": body})

    def _transition_id(self, issue_id: str, transition: str) -> str:
        data = self._request("GET", f"/issue/{issue_id}/transitions").json()
        for candidate in data.get("transitions", []):
            if candidate["name"] == transition:
                return str(candidate["id"])
        raise TrackerError(f"Transition '{transition}' not available on {issue_id}")

    def promote(
        self,
        issue_id: str,
        transition: str,
        fields: Mapping[str, str],
        comment: str,
        role: str,
    ) -> None:
        transition_id = self._transition_id(issue_id, transition)
        self._request(
            "POST",
            f"/issue/{issue_id}/transitions",
            json={
                "transition": {"id": transition_id},
                "fields": {field: {"value": value} for field, value in fields.items()},
                "update": {
                    "comment": [{"add": {"body": comment, "visibility": {"type": "role", "value": role}}}],
                },
            },
        )
