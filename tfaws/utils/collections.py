from typing import Any, Mapping


def get_nested(obj: Mapping, path: str) -> Any:
    """Returns the value at the given dotted path (e.g., ``attributePayload.attributes``), or None."""
    result = obj
    for part in path.split("."):
        if not isinstance(result, Mapping):
            return None
        result = result.get(part)
    return result


def set_nested(obj: dict, path: str, value: Any) -> dict:
    """Sets the value at the given dotted path, creating intermediate dicts as needed."""
    parts = path.split(".")
    result = obj
    for part in parts[:-1]:
        result = result.setdefault(part, {})
    result[parts[-1]] = value
    return obj
