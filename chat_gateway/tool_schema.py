import json
from typing import Any, Dict, List, Sequence, Tuple

from jsonschema import Draft202012Validator

FILE_SEARCH_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "type": {"const": "file_search"},
        "vector_store_ids": {
            "type": "array",
            "items": {"type": "string", "minLength": 1},
            "minItems": 1,
        },
    },
    "required": ["type", "vector_store_ids"],
}

_VALIDATOR = Draft202012Validator(FILE_SEARCH_SCHEMA)


def file_search_tool(vector_store_ids: Sequence[str]) -> Dict[str, Any]:
    return {"type": "file_search", "vector_store_ids": list(vector_store_ids)}


def validate_tools(tools: List[Dict[str, Any]]) -> Tuple[bool, str]:
    if not isinstance(tools, list):
        return False, "tools must be a list"

    for idx, tool in enumerate(tools):
        errors = sorted(_VALIDATOR.iter_errors(tool), key=lambda e: e.path)
        if errors:
            first = errors[0]
            location = ".".join(str(x) for x in first.path) or "<root>"
            return False, f"tools[{idx}] invalid at {location}: {first.message}"
    return True, ""


def tool_names(tools: List[Dict[str, Any]]) -> List[str]:
    if not isinstance(tools, list):
        return []
    return [t["type"] for t in tools if isinstance(t, dict) and isinstance(t.get("type"), str)]


def schema_error_log(tool_name: str, error: str) -> str:
    return json.dumps(
        {"schema_valid": False, "tool_name": tool_name, "error": error},
        ensure_ascii=False,
    )
