"""
Per-entity validation rules.

Every rule for the entity type runs and every failing message is collected,
so one rejected record can produce several report lines. The typed entity is
only constructed once all rules pass.
"""

from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional

from pydantic import ValidationError as PydanticValidationError

from schemas.entities import ENTITY_MODELS, USER_STATES, EntityType, ImportEntity


class ValidationResult(NamedTuple):
    ok: bool
    problems: List[str]
    entity: Optional[ImportEntity] = None


def _blank(value: Any) -> bool:
    return value is None or value == ""


def _check_user(fields: Mapping[str, Any]) -> List[str]:
    problems = []
    if _blank(fields.get("email")):
        problems.append(f"Missing email in user data: {dict(fields)!r}.")
    if fields.get("state") not in USER_STATES:
        problems.append(f"Invalid state in user data: {dict(fields)!r}.")
    return problems


def _check_category(fields: Mapping[str, Any]) -> List[str]:
    if _blank(fields.get("name")):
        return [f"Missing name in category data: {dict(fields)!r}."]
    return []


def _check_section(fields: Mapping[str, Any]) -> List[str]:
    if _blank(fields.get("title")):
        return [f"Missing title in section data: {dict(fields)!r}."]
    return []


def _check_discussion(fields: Mapping[str, Any]) -> List[str]:
    problems = []
    if _blank(fields.get("author_email")):
        problems.append(f"Missing author_email in discussion data: {dict(fields)!r}.")
    comments = fields.get("comments")
    if not comments or any(
        not isinstance(comment, Mapping) or _blank(comment.get("author_email"))
        for comment in comments
    ):
        problems.append(f"Missing comments and authors in discussion data: {dict(fields)!r}.")
    return problems


def _check_kb(fields: Mapping[str, Any]) -> List[str]:
    if _blank(fields.get("title")) or _blank(fields.get("body")):
        return [f"Missing title or body in kb data: {dict(fields)!r}."]
    return []


_RULES: Dict[EntityType, Callable[[Mapping[str, Any]], List[str]]] = {
    EntityType.USER: _check_user,
    EntityType.CATEGORY: _check_category,
    EntityType.SECTION: _check_section,
    EntityType.DISCUSSION: _check_discussion,
    EntityType.KB: _check_kb,
}


def _check_unknown_fields(entity_type: EntityType, fields: Mapping[str, Any]) -> List[str]:
    known = ENTITY_MODELS[entity_type].model_fields
    unknown = sorted(str(name) for name in fields if name not in known)
    if unknown:
        return [f"Unknown fields {', '.join(unknown)} in {entity_type.value} data: {dict(fields)!r}."]
    return []


def validate(entity_type: EntityType, fields: Mapping[str, Any]) -> ValidationResult:
    """
    Validate raw fields for one entity.

    Args:
        entity_type: Kind of entity being added
        fields: Loosely structured record

    Returns:
        ValidationResult; ``entity`` holds the typed model when ``ok``
    """
    entity_type = EntityType(entity_type)
    problems = _RULES[entity_type](fields) + _check_unknown_fields(entity_type, fields)
    if problems:
        return ValidationResult(False, problems)

    try:
        entity = ENTITY_MODELS[entity_type](**fields)
    except PydanticValidationError as e:
        problems = [
            f"Invalid {entity_type.value} data "
            f"({'.'.join(str(part) for part in error['loc'])}: {error['msg']}): {dict(fields)!r}."
            for error in e.errors()
        ]
        return ValidationResult(False, problems)

    return ValidationResult(True, [], entity)
