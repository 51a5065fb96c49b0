# gateway/runtime/definer.py
from __future__ import annotations

import logging
from typing import Any, List, Optional

from gateway.core.errors import SchemaDefinitionError, SessionOperationError
from gateway.model.schema import ResourceSchema
from gateway.runtime.session import ResourceSession


def define_schema(
    session: ResourceSession,
    schema: ResourceSchema,
    *,
    logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Ensure every object of the schema is defined on the session.

    - Objects already defined are skipped (checked one by one), so calling
      this twice has no effect the second time.
    - An object whose definition cannot be built is dropped and reported;
      the remaining objects are still submitted.
    - All new definitions go out in a single define operation. Nothing is
      submitted when nothing is missing.

    Returns False if any object could not be defined.
    """
    log = logger or logging.getLogger(__name__)
    log.info("DEFINE_OBJECTS role=%s count=%d", session.role, len(schema))

    success = True
    definitions: List[Any] = []
    names: List[str] = []

    for obj in schema:
        try:
            if session.is_object_defined(obj.object_id):
                log.debug("OBJECT_ALREADY_DEFINED role=%s object=%s id=%d", session.role, obj.name, obj.object_id)
                continue
        except SessionOperationError as e:
            log.error("OBJECT_LOOKUP_FAILED role=%s object=%s err=%s", session.role, obj.name, e.hint or e.message)
            success = False
            continue

        try:
            definitions.append(session.new_definition(obj))
        except SchemaDefinitionError as e:
            log.error("OBJECT_DEFINITION_FAILED role=%s object=%s err=%s", session.role, obj.name, e.hint or e.message)
            success = False
            continue
        names.append(obj.name)

    if not definitions:
        return success

    try:
        session.define(definitions)
    except (SchemaDefinitionError, SessionOperationError) as e:
        log.error("DEFINE_OPERATION_FAILED role=%s objects=%s err=%s", session.role, names, e.hint or e.message)
        return False

    log.info("OBJECTS_DEFINED role=%s objects=%s", session.role, names)
    return success
