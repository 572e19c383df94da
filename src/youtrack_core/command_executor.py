"""Command executor: applies an update plan one command at a time.

Commands are sent individually rather than batched so that a single invalid
value (e.g. "Type: Bug" in a project that only defines Task/Defect) cannot abort
its siblings. Every failure is captured as a CommandOutcome; the executor never
raises for a rejected or failed request and never retries (the transport does).
"""
import logging
from typing import Optional

import httpx

from .models import CommandKind, FailureKind
from .schemas import Command, CommandOutcome, UpdatePlan

logger = logging.getLogger("youtrack-core.command_executor")


def classify_failure(status_code: Optional[int]) -> FailureKind:
    """Map an HTTP status (None for connection errors) to a failure kind."""
    if status_code is None or status_code == 401 or status_code >= 500:
        return FailureKind.TRANSPORT
    if status_code == 400:
        return FailureKind.VALUE_REJECTED
    if status_code == 403:
        return FailureKind.PERMISSION_DENIED
    return FailureKind.REJECTED


def extract_error_detail(error: httpx.HTTPError) -> str:
    """Best human-readable message from a failed request."""
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in ("error_description", "error", "detail"):
                if body.get(key):
                    return str(body[key])
        if response.text:
            return response.text
        return f"HTTP {response.status_code}"
    return f"Connection failed - {error}"


def _failed(command: Command, error: httpx.HTTPError) -> CommandOutcome:
    status_code = error.response.status_code if isinstance(error, httpx.HTTPStatusError) else None
    return CommandOutcome(
        command=command,
        succeeded=False,
        error_detail=extract_error_detail(error),
        status_code=status_code,
        failure_kind=classify_failure(status_code),
    )


def basic_fields_command(basic_fields: dict[str, str]) -> Command:
    """Synthetic command standing for the direct summary/description update."""
    names = ", ".join(name.capitalize() for name in basic_fields)
    summary = basic_fields.get("summary")
    return Command(
        field=names,
        value=summary if summary is not None else f"{len(basic_fields.get('description') or '')} chars",
        attribute=",".join(basic_fields),
        kind=CommandKind.BASIC,
    )


async def apply_basic_fields(
    client: httpx.AsyncClient,
    issue_id: str,
    basic_fields: dict[str, str],
) -> CommandOutcome:
    """Replace summary and/or description in a single call."""
    command = basic_fields_command(basic_fields)
    try:
        response = await client.post(f"/issues/{issue_id}", json=basic_fields, params={"fields": "id"})
        response.raise_for_status()
    except httpx.HTTPError as e:
        outcome = _failed(command, e)
        logger.warning(f"Basic field update on {issue_id} failed: {outcome.error_detail}")
        return outcome

    logger.info(f"Updated {command.field} of {issue_id}")
    return CommandOutcome(command=command, succeeded=True)


async def apply_command(
    client: httpx.AsyncClient,
    issue_id: str,
    command: Command,
) -> CommandOutcome:
    """Apply one command string to one issue."""
    payload = {"query": command.render(), "issues": [{"idReadable": issue_id}]}
    try:
        response = await client.post("/commands", json=payload)
        response.raise_for_status()
    except httpx.HTTPError as e:
        outcome = _failed(command, e)
        logger.warning(
            f"Command '{command.render()}' on {issue_id} failed "
            f"({outcome.failure_kind.value}): {outcome.error_detail}"
        )
        return outcome

    logger.info(f"Applied '{command.render()}' to {issue_id}")
    return CommandOutcome(command=command, succeeded=True)


async def execute_all(
    client: httpx.AsyncClient,
    issue_id: str,
    plan: UpdatePlan,
) -> list[CommandOutcome]:
    """Apply basic fields then every command, strictly in order.

    Returns one outcome per attempted call: the basic-fields update (if any)
    first, followed by the commands in plan order.
    """
    outcomes: list[CommandOutcome] = []

    if plan.basic_fields:
        outcomes.append(await apply_basic_fields(client, issue_id, plan.basic_fields))

    for command in plan.commands:
        outcomes.append(await apply_command(client, issue_id, command))

    return outcomes
