"""Result aggregation for multi-command issue updates.

YouTrack offers no transactional multi-field update, so a failed command is
never rolled back. The aggregator classifies the overall outcome and turns each
failure into a diagnostic. When a constrained field rejected a value, it looks
up the field's legal values so the caller can retry with a correct one.
"""
import logging
from typing import Awaitable, Callable, Optional

import httpx

from .field_discovery import list_field_values
from .models import FailureKind, UpdateStatus
from .schemas import CommandOutcome, Diagnostic, FieldValueSet

logger = logging.getLogger("youtrack-core.result_aggregator")

FieldLookup = Callable[[httpx.AsyncClient, str, str], Awaitable[FieldValueSet]]


def classify_outcomes(outcomes: list[CommandOutcome]) -> UpdateStatus:
    """Overall status of an update from its per-command outcomes."""
    if not outcomes:
        return UpdateStatus.NOOP

    succeeded = sum(1 for outcome in outcomes if outcome.succeeded)
    if succeeded == len(outcomes):
        return UpdateStatus.SUCCESS
    if succeeded > 0:
        return UpdateStatus.PARTIAL
    return UpdateStatus.FAILURE


def _needs_enrichment(outcome: CommandOutcome) -> bool:
    return (
        outcome.command.constrained
        and outcome.failure_kind == FailureKind.VALUE_REJECTED
    )


def _describe_failure(outcome: CommandOutcome) -> str:
    command = outcome.command
    detail = outcome.error_detail or "Unknown error"
    if outcome.failure_kind == FailureKind.VALUE_REJECTED:
        return f"Value '{command.value}' was rejected for {command.field}: {detail}"
    if outcome.failure_kind == FailureKind.PERMISSION_DENIED:
        return f"Not permitted to change {command.field}: {detail}"
    if outcome.failure_kind == FailureKind.TRANSPORT:
        return f"Could not reach YouTrack while changing {command.field}: {detail}"
    return f"Change to {command.field} was refused: {detail}"


async def _lookup_values(
    lookup: FieldLookup,
    client: httpx.AsyncClient,
    project_id: str,
    field_name: str,
) -> FieldValueSet:
    # A lookup failure only costs the hint
    try:
        return await lookup(client, project_id, field_name)
    except Exception as e:
        logger.warning(f"Value lookup for {field_name} in project {project_id} failed: {e}")
        return FieldValueSet.unavailable(project_id, field_name, str(e))


async def aggregate(
    client: httpx.AsyncClient,
    outcomes: list[CommandOutcome],
    project_id: Optional[str],
    lookup: FieldLookup = list_field_values,
) -> tuple[UpdateStatus, list[Diagnostic]]:
    """Classify outcomes and build diagnostics in attempt order.

    Field values are looked up at most once per field for this call. A failed
    lookup only drops the hint; the original error is always reported.
    """
    status = classify_outcomes(outcomes)
    diagnostics: list[Diagnostic] = []
    value_sets: dict[str, FieldValueSet] = {}

    for outcome in outcomes:
        if outcome.succeeded:
            continue

        command = outcome.command
        diagnostic = Diagnostic(command=command.render(), error=_describe_failure(outcome))

        if _needs_enrichment(outcome):
            if project_id is None:
                logger.info(f"No project context for {command.field}; skipping value lookup")
            else:
                key = command.field.lower()
                if key not in value_sets:
                    value_sets[key] = await _lookup_values(lookup, client, project_id, command.field)
                value_set = value_sets[key]
                if value_set.available and value_set.values:
                    allowed = value_set.names()
                    diagnostic.allowed_values = allowed
                    diagnostic.hint = f"Allowed values for {command.field}: {', '.join(allowed)}"

        diagnostics.append(diagnostic)

    logger.info(f"Aggregated {len(outcomes)} outcomes: status={status.value}, {len(diagnostics)} diagnostics")
    return status, diagnostics
