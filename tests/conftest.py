"""Shared fixtures: an in-memory YouTrack served through httpx.MockTransport."""
import copy
import json
import re

import httpx
import pytest
import pytest_asyncio


BASE_URL = "http://youtrack.test/api"


def _enum_field(name, values):
    return {
        "field": {"name": name, "localizedName": None},
        "bundle": {"values": values},
    }


def default_project_fields():
    """Field configuration of the PROJ project.

    Priority values are deliberately listed out of ordinal order.
    """
    return [
        _enum_field("State", [
            {"name": "Open", "ordinal": 0, "isResolved": False},
            {"name": "In Progress", "ordinal": 1, "isResolved": False},
            {"name": "Testing", "ordinal": 2, "isResolved": False},
            {"name": "Fixed", "ordinal": 3, "isResolved": True},
        ]),
        _enum_field("Priority", [
            {"name": "High", "ordinal": 2},
            {"name": "Low", "ordinal": 0},
            {"name": "Show-stopper", "ordinal": 3, "archived": True},
            {"name": "Normal", "ordinal": 1},
        ]),
        _enum_field("Type", [
            {"name": "Bug", "ordinal": 0},
            {"name": "Task", "ordinal": 1},
        ]),
        _enum_field("Subsystem", [
            {"name": "Backend", "ordinal": 0},
            {"name": "Frontend", "ordinal": 1},
        ]),
        {"field": {"name": "Assignee"}, "bundle": {}},
        {"field": {"name": "Estimation"}},
    ]


def default_issue():
    return {
        "id": "2-1",
        "idReadable": "PROJ-1",
        "summary": "Login button does nothing",
        "description": "Steps to reproduce...",
        "project": {"id": "0-1", "shortName": "PROJ", "name": "Project"},
        "customFields": [
            {"name": "State", "value": {"name": "Open"}},
            {"name": "Priority", "value": {"name": "Normal"}},
            {"name": "Type", "value": {"name": "Bug"}},
            {"name": "Assignee", "value": None},
            {"name": "Estimation", "value": None},
        ],
        "tags": [],
    }


class FakeYouTrack:
    """Minimal YouTrack REST backend.

    Validates enumerated field values against the project configuration and
    answers 400 for unknown ones, like the real command endpoint. Every request
    is recorded in ``calls`` as (method, path, json body or None).
    """

    def __init__(self):
        self.projects = {"PROJ": {"id": "0-1", "shortName": "PROJ", "name": "Project", "archived": False}}
        self.project_fields = {"PROJ": default_project_fields()}
        self.issues = {"PROJ-1": default_issue()}
        self.calls = []
        # Query string -> (status, body) returned by /commands instead of applying it
        self.command_failures = {}
        self.refresh_failure = None
        # Replaces the JSON body of issue refreshes when set
        self.refresh_body = None
        self.fields_failure = None
        self.comments_failure = None

    # -- helpers ---------------------------------------------------------

    def calls_to(self, method, path_prefix):
        return [call for call in self.calls if call[0] == method and call[1].startswith(path_prefix)]

    def _issue(self, issue_id):
        for key, issue in self.issues.items():
            if issue_id in (key, issue["id"]):
                return issue
        return None

    def _allowed(self, project, field_name):
        for project_field in self.project_fields.get(project, []):
            if project_field["field"]["name"].lower() == field_name.lower():
                values = (project_field.get("bundle") or {}).get("values")
                if values is None:
                    return None
                return [value["name"] for value in values if not value.get("archived")]
        return None

    def _apply_command(self, issue, query):
        if query.startswith("tag "):
            for name in re.findall(r"tag (\{[^}]*\}|\S+)", query):
                issue["tags"].append({"name": name.strip("{}")})
            return None

        field_name, _, value = query.partition(": ")
        project = issue["project"]["shortName"]
        allowed = self._allowed(project, field_name)
        if allowed is not None and value not in allowed:
            return httpx.Response(400, json={
                "error": "bad_request",
                "error_description": f"Unknown {field_name.lower()} value: {value}",
            })

        for custom_field in issue["customFields"]:
            if custom_field["name"].lower() == field_name.lower():
                custom_field["value"] = {"name": value}
                break
        else:
            issue["customFields"].append({"name": field_name, "value": {"name": value}})
        return None

    # -- transport -------------------------------------------------------

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith("/api"):
            path = path[len("/api"):]
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, path, body))

        parts = [part for part in path.split("/") if part]

        if request.method == "POST" and parts == ["commands"]:
            return self._commands(body)

        if parts[:1] == ["issues"]:
            return self._issues(request, parts, body)

        if parts[:2] == ["admin", "projects"]:
            return self._projects(parts)

        return httpx.Response(404, json={"error": "Not Found"})

    def _commands(self, body):
        query = body["query"]
        if query in self.command_failures:
            status, payload = self.command_failures[query]
            return httpx.Response(status, json=payload)

        issue = self._issue(body["issues"][0]["idReadable"])
        if issue is None:
            return httpx.Response(404, json={"error": "Issue not found"})
        failure = self._apply_command(issue, query)
        return failure or httpx.Response(200, json={})

    def _create_issue(self, body):
        project = next(
            (project for project in self.projects.values() if project["id"] == (body.get("project") or {}).get("id")),
            None,
        )
        if project is None or not body.get("summary"):
            return httpx.Response(400, json={"error": "bad_request", "error_description": "Project and summary are required"})

        number = len(self.issues) + 1
        readable_id = f"{project['shortName']}-{number}"
        issue = default_issue()
        issue.update({
            "id": f"2-{number}",
            "idReadable": readable_id,
            "summary": body["summary"],
            "description": body.get("description"),
        })
        self.issues[readable_id] = issue
        return httpx.Response(200, json={"id": issue["id"], "idReadable": readable_id})

    def _issues(self, request, parts, body):
        if len(parts) == 1 and request.method == "POST":
            return self._create_issue(body)

        if len(parts) == 1:
            query = request.url.params.get("query", "")
            top = int(request.url.params.get("$top", 50))
            matches = [copy.deepcopy(issue) for issue in self.issues.values()
                       if issue["project"]["shortName"] in query or "project:" not in query]
            return httpx.Response(200, json=matches[:top])

        issue = self._issue(parts[1])
        if issue is None:
            return httpx.Response(404, json={"error": "Issue not found"})

        if len(parts) == 2 and request.method == "GET":
            if self.refresh_failure is not None:
                return httpx.Response(self.refresh_failure, json={"error": "unavailable"})
            if self.refresh_body is not None:
                return httpx.Response(200, json=self.refresh_body)
            return httpx.Response(200, json=copy.deepcopy(issue))

        if len(parts) == 2 and request.method == "POST":
            issue.update(body)
            return httpx.Response(200, json={"id": issue["id"]})

        if parts[2:] == ["comments"]:
            if self.comments_failure is not None:
                return httpx.Response(self.comments_failure, json={"error": "Comments are disabled"})
            return httpx.Response(200, json={"id": "4-1", "text": body["text"], "author": {"login": "admin"}})

        if parts[2:] == ["timeTracking", "workItems"]:
            minutes = body["duration"]["minutes"]
            return httpx.Response(200, json={
                "id": "5-1",
                "duration": {"minutes": minutes, "presentation": f"{minutes}m"},
                "text": body.get("text"),
                "type": body.get("type"),
            })

        return httpx.Response(404, json={"error": "Not Found"})

    def _projects(self, parts):
        if len(parts) == 2:
            return httpx.Response(200, json=list(self.projects.values()))

        project = self.projects.get(parts[2])
        if project is None:
            return httpx.Response(404, json={"error": "Project not found"})

        if parts[3:] == ["customFields"]:
            if self.fields_failure is not None:
                return httpx.Response(self.fields_failure, json={"error": "Not Found"})
            return httpx.Response(200, json=copy.deepcopy(self.project_fields.get(parts[2], [])))

        return httpx.Response(200, json=project)


@pytest.fixture
def fake():
    return FakeYouTrack()


@pytest_asyncio.fixture
async def client(fake):
    async with httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(fake)) as client:
        yield client
