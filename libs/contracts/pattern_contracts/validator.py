import json
from pathlib import Path
from typing import Any, Dict, Optional

from jsonschema import Draft7Validator, ValidationError


class EventValidator:
    """Validates events against JSON schemas (supports dot- and underscore-style names)."""

    def __init__(self, schemas_dir: Optional[Path] = None):
        self.schemas_dir = schemas_dir or Path(__file__).parent / "schemas"
        self.schemas: Dict[str, Dict[str, Any]] = {}
        self._load_schemas()

    def _load_schemas(self):
        """Load all JSON schemas from the schemas directory"""
        for schema_file in self.schemas_dir.glob("*.json"):
            with open(schema_file, "r", encoding="utf-8") as f:
                schema = json.load(f)
            Draft7Validator.check_schema(schema)
            self.schemas[schema_file.stem] = schema

    def _resolve_schema_key(self, event_type: str) -> str:
        """Accepts either underscore ("asset_finalized") or dotted ("asset.finalized") forms."""
        normalized = event_type.replace(".", "_")
        if normalized in self.schemas:
            return normalized
        raise ValueError(f"Unknown event type: {event_type}")

    def validate_event(self, event_type: str, event_data: Dict[str, Any]) -> bool:
        """
        Validate an event against its schema.

        Returns True if valid; raises ValidationError (or ValueError for an
        unknown type) otherwise.
        """
        schema = self.schemas[self._resolve_schema_key(event_type)]
        errors = sorted(Draft7Validator(schema).iter_errors(event_data), key=lambda e: list(e.path))
        if errors:
            raise ValidationError(f"Event validation failed for {event_type}: {errors[0].message}")
        return True


# Global validator instance
validator = EventValidator()
