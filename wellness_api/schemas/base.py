from typing import Any, Dict, Iterable

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..errors import ValidationError


class CamelModel(BaseModel):
    """Python attributes in snake_case, JSON documents in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    def updates(self, nullable: Iterable[str] = ()) -> Dict[str, Any]:
        """Fields the client sent, by attribute name; an explicit null only clears ``nullable`` fields."""
        changes = self.model_dump(exclude_unset=True)
        allowed = set(nullable)
        rejected = sorted(key for key, value in changes.items() if value is None and key not in allowed)
        if rejected:
            raise ValidationError(
                "Validation failed",
                errors=[{"loc": ["body", to_camel(key)], "msg": "Field may not be null"} for key in rejected],
            )
        return changes
