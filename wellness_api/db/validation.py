import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

from jsonschema import Draft7Validator

from ..errors import StorageFailure

SCHEMA_DIR = Path(__file__).parent / "schemas"


@lru_cache(maxsize=None)
def table_validator(table: str) -> Draft7Validator:
    path = SCHEMA_DIR / f"{table}.json"
    schema = json.loads(path.read_text(encoding="utf-8"))
    Draft7Validator.check_schema(schema)
    return Draft7Validator(schema)


def check_document(table: str, document: Mapping[str, Any]) -> None:
    """Raise StorageFailure listing every violation of the table's document schema."""
    violations = sorted(table_validator(table).iter_errors(document), key=lambda error: list(map(str, error.absolute_path)))
    if violations:
        raise StorageFailure(
            f"Rejected invalid {table} row",
            errors=[{"loc": list(error.absolute_path), "msg": error.message} for error in violations],
        )
