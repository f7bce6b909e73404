"""
Helpers shared by the Firestore-backed models
"""

import logging
from typing import Any, Dict, Type, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def coerce_model_fields(model_cls: Type[BaseModel], data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check every key of data that names a field of model_cls (by alias or by
    attribute name) and replace its value with the validated one, e.g.
    "5" -> 5 for an int field or an ISO string -> datetime.

    Keys that are not model fields are left alone. model_cls must have no
    required fields other than id.

    Raises:
        pydantic.ValidationError: a value does not fit its field type
    """
    for name, field in model_cls.model_fields.items():
        if name == "id":
            continue
        for key in {field.alias or name, name}:
            if key in data:
                checked = model_cls.model_validate({"id": "", key: data[key]})
                data[key] = getattr(checked, name)
    return data


def load_document(model_cls: Type[ModelT], doc: Dict[str, Any], doc_id: str) -> ModelT:
    """Build model_cls from a stored document, dropping fields that fail validation."""
    data = {**doc, "id": doc_id}
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        bad = {err["loc"][0] for err in exc.errors() if err["loc"]}
        for name, field in model_cls.model_fields.items():
            if name in bad or field.alias in bad:
                bad |= {name, field.alias}
        logger.warning(
            "Document %s has invalid %s fields, ignoring: %s",
            doc_id, model_cls.__name__, sorted(map(str, bad)))
        return model_cls.model_validate(
            {k: v for k, v in data.items() if k not in bad})
