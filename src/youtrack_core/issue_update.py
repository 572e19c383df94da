"""Issue field update pipeline.

Stages: built -> executing -> aggregating -> refreshing -> done

The pipeline always reaches "done". Rejected commands, transport failures and
a failed refresh are reported inside the UpdateResult; only a malformed request
(bad issue ID, no attributes, conflicting fields) raises, and it does so before
any call reaches YouTrack.
"""
import logging
from typing import Any, Optional

import httpx

from .command_executor import execute_all
from .commands import UpdateValidationError, build_commands, project_from_issue_id, validate_issue_id
from .field_discovery import list_field_values
from .result_aggregator import FieldLookup, aggregate
from .schemas import UpdateRequest, UpdateResult

logger = logging.getLogger("youtrack-core.issue_update")

ISSUE_FIELDS = ",".join([
    "id",
    "idReadable",
    "summary",
    "description",
    "project(id,shortName,name)",
    "customFields(name,value(name,login,fullName,presentation,minutes))",
    "tags(name)",
    "created",
    "updated",
    "resolved",
])


async def refresh_issue(client: httpx.AsyncClient, issue_id: str) -> dict[str, Any]:
    """Fetch the authoritative state of an issue."""
    response = await client.get(f"/issues/{issue_id}", params={"fields": ISSUE_FIELDS})
    response.raise_for_status()
    issue = response.json()
    if not isinstance(issue, dict):
        raise ValueError(f"Expected an issue object, got {type(issue).__name__}")
    return issue


async def update_issue(
    client: httpx.AsyncClient,
    issue_id: str,
    request: UpdateRequest,
    project_id: Optional[str] = None,
    lookup: FieldLookup = list_field_values,
) -> UpdateResult:
    """Apply an update request to an issue and report what actually happened.

    Args:
        client: YouTrack API client
        issue_id: Readable (PROJ-123) or internal (2-15) issue ID
        request: Attributes to change
        project_id: Project used to look up legal values for rejected fields;
            defaults to the prefix of a readable issue ID
        lookup: Field value lookup used to enrich value rejections

    Returns:
        UpdateResult with the refreshed issue (None if refresh failed), outcome
        counts and one diagnostic per failed command in attempt order

    Raises:
        UpdateValidationError: If the request is malformed (before any call)
    """
    validate_issue_id(issue_id)
    plan = build_commands(request)
    logger.info(
        f"[{issue_id}] built: {len(plan.commands)} commands"
        f"{' + basic fields' if plan.basic_fields else ''}"
    )

    logger.info(f"[{issue_id}] executing")
    outcomes = await execute_all(client, issue_id, plan)

    logger.info(f"[{issue_id}] aggregating")
    project_context = project_id or project_from_issue_id(issue_id)
    status, diagnostics = await aggregate(client, outcomes, project_context, lookup=lookup)

    logger.info(f"[{issue_id}] refreshing")
    warnings: list[str] = []
    snapshot = None
    try:
        snapshot = await refresh_issue(client, issue_id)
    except (httpx.HTTPError, ValueError) as e:
        logger.warning(f"[{issue_id}] refresh failed: {e}")
        warnings.append(
            f"Could not fetch the updated issue ({e}). The outcomes above are "
            f"accurate but the issue's final state is unknown."
        )

    succeeded = sum(1 for outcome in outcomes if outcome.succeeded)
    result = UpdateResult(
        issue_id=issue_id,
        status=status,
        issue=snapshot,
        attempted=len(outcomes),
        succeeded=succeeded,
        failed=len(outcomes) - succeeded,
        diagnostics=diagnostics,
        warnings=warnings,
    )
    logger.info(f"[{issue_id}] done: {result.status} ({succeeded}/{len(outcomes)} applied)")
    return result


async def update_issues(
    client: httpx.AsyncClient,
    issue_ids: list[str],
    request: UpdateRequest,
    project_id: Optional[str] = None,
    lookup: FieldLookup = list_field_values,
) -> list[UpdateResult]:
    """Apply the same update to several issues, one issue at a time.

    The request and every ID are validated up front so that a malformed input
    is rejected before the first issue is touched.
    """
    if not issue_ids:
        raise UpdateValidationError("No issue IDs given", field="issue_ids")
    for issue_id in issue_ids:
        validate_issue_id(issue_id)
    build_commands(request)

    results = []
    for issue_id in issue_ids:
        results.append(await update_issue(client, issue_id, request, project_id=project_id, lookup=lookup))
    return results
