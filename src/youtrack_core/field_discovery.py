"""Discovery of legal values for project custom fields.

Used to explain rejected commands ("Priority must be one of Low, Normal, High")
and exposed directly through the get_field_values tool.
"""
import logging

import httpx

from .schemas import FieldValue, FieldValueSet

logger = logging.getLogger("youtrack-core.field_discovery")

PROJECT_FIELDS_QUERY = ",".join([
    "field(name,localizedName)",
    "bundle(values(name,localizedName,ordinal,archived,isResolved))",
])




def _parse_field_values(project_fields: list, project_id: str, field_name: str) -> FieldValueSet:
    """Pick one field out of a project's field configuration."""
    wanted = field_name.lower()
    match = None
    for project_field in project_fields:
        field = project_field.get("field") or {}
        names = {(field.get("name") or "").lower(), (field.get("localizedName") or "").lower()}
        if wanted in names:
            match = project_field
            break

    if match is None:
        logger.warning(f"Field {field_name} not found in project {project_id}")
        return FieldValueSet.unavailable(project_id, field_name, f"Field '{field_name}' not found")

    bundle = match.get("bundle") or {}
    raw_values = bundle.get("values")
    if not raw_values:
        logger.info(f"Field {field_name} in project {project_id} has no value bundle")
        return FieldValueSet.unavailable(project_id, field_name, f"Field '{field_name}' has no fixed values")

    values = [
        FieldValue(
            name=raw["name"],
            localized_name=raw.get("localizedName"),
            ordinal=raw.get("ordinal") or 0,
            is_resolved=raw.get("isResolved"),
            archived=bool(raw.get("archived")),
        )
        for raw in raw_values
        if raw.get("name")
    ]
    # sorted() is stable, so equal ordinals keep the backend's order
    values = sorted((value for value in values if not value.archived), key=lambda value: value.ordinal)

    logger.info(f"Discovered {len(values)} values for {field_name} in project {project_id}")
    return FieldValueSet(project_id=project_id, field_name=field_name, values=values)


async def list_field_values(
    client: httpx.AsyncClient,
    project_id: str,
    field_name: str,
) -> FieldValueSet:
    """List the values assignable to a field in a project.

    Values keep the order declared by the project (by ordinal), not alphabetical
    order, so workflow states read Open -> In Progress -> Fixed.

    Never raises: an inaccessible project, an unknown field, a field without
    a value bundle or a malformed configuration yields an unavailable
    FieldValueSet.
    """
    try:
        response = await client.get(
            f"/admin/projects/{project_id}/customFields",
            params={"fields": PROJECT_FIELDS_QUERY},
        )
        response.raise_for_status()
        project_fields = response.json()
        if not isinstance(project_fields, list):
            raise TypeError(f"expected a list of fields, got {type(project_fields).__name__}")
        return _parse_field_values(project_fields, project_id, field_name)
    except httpx.HTTPError as e:
        logger.warning(f"Could not load fields of project {project_id}: {e}")
        return FieldValueSet.unavailable(project_id, field_name, f"Project fields unavailable: {e}")
    except (ValueError, TypeError, AttributeError, KeyError) as e:
        logger.warning(f"Malformed field configuration for project {project_id}: {e}")
        return FieldValueSet.unavailable(project_id, field_name, "Malformed field configuration")
