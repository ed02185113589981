"""
Static schemas of the resource types.

The desired state handed over by the host is an untyped mapping. Each resource type declares a ``ResourceSchema``
listing its attributes, their types and flags, and the desired state is validated against it before any request is
built from it.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator, Mapping, Optional

from tfaws.resources.exceptions import InvalidDesiredState

Validator = Callable[[Any], None]


class AttributeType(Enum):
    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    STRING_MAP = "string_map"


@dataclass(frozen=True)
class Attribute:
    """
    A single attribute of a resource type.

    ``force_new`` attributes can only be set at creation time, changing them requires a replacement of the resource.
    ``computed`` attributes are assigned by the vendor and never sent. ``default`` is the value used when an optional
    attribute is absent from the desired state (default-on-absence policy); ``None`` means absent attributes are not
    sent at all.
    """

    name: str
    type: AttributeType = AttributeType.STRING
    required: bool = False
    force_new: bool = False
    computed: bool = False
    default: Any = None
    validators: tuple[Validator, ...] = ()

    @property
    def mutable(self) -> bool:
        return not self.force_new and not self.computed

    def empty_value(self):
        if self.default is not None:
            return self.default
        if self.type is AttributeType.STRING_MAP:
            return {}
        return None

    def check_type(self, value: Any) -> Optional[str]:
        if self.type is AttributeType.STRING and not isinstance(value, str):
            return f"{self.name} must be a string, got {type(value).__name__}"
        if self.type is AttributeType.BOOLEAN and not isinstance(value, bool):
            return f"{self.name} must be a boolean, got {type(value).__name__}"
        if self.type is AttributeType.INTEGER and (
            isinstance(value, bool) or not isinstance(value, int)
        ):
            return f"{self.name} must be an integer, got {type(value).__name__}"
        if self.type is AttributeType.STRING_MAP:
            if not isinstance(value, Mapping):
                return f"{self.name} must be a map of strings, got {type(value).__name__}"
            if not all(isinstance(k, str) and isinstance(v, str) for k, v in value.items()):
                return f"{self.name} must only contain string keys and values"
        return None


def string_length_between(min_length: int, max_length: int) -> Validator:
    def _validate(value: str):
        if not min_length <= len(value) <= max_length:
            raise ValueError(
                f"expected length to be in the range ({min_length} - {max_length}), got {value}"
            )

    return _validate


def string_matches(pattern: str, message: str = None) -> Validator:
    regex = re.compile(pattern)

    def _validate(value: str):
        if not regex.match(value):
            raise ValueError(message or f"invalid value {value}, must match {pattern}")

    return _validate


def string_in(*values: str) -> Validator:
    def _validate(value: str):
        if value not in values:
            raise ValueError(f"expected one of {', '.join(values)}, got {value}")

    return _validate


class ResourceSchema:
    """The ordered set of attributes of one resource type."""

    def __init__(self, *attributes: Attribute):
        self._attributes: dict[str, Attribute] = {attribute.name: attribute for attribute in attributes}

    def __getitem__(self, name: str) -> Attribute:
        return self._attributes[name]

    def __iter__(self) -> Iterator[Attribute]:
        return iter(self._attributes.values())

    def __contains__(self, name: str) -> bool:
        return name in self._attributes

    def effective_value(self, model: Mapping[str, Any], name: str) -> Any:
        """The value of an attribute in the given model, with the default-on-absence policy applied."""
        value = model.get(name)
        if value is None:
            return self[name].empty_value()
        return value

    def validate(self, desired_state: Optional[Mapping[str, Any]], **error_context) -> dict:
        """
        Validates a desired state and returns a copy of it containing only the settable attributes. Computed
        attributes in the desired state (e.g., copied over from a previous read) are dropped.

        :param desired_state: the desired state handed over by the host
        :param error_context: operation, resource_type and identifier passed on to the raised error
        :return: the validated copy of the desired state
        :raises InvalidDesiredState: listing every problem found
        """
        desired_state = desired_state or {}
        problems = []

        unknown = [name for name in desired_state if name not in self]
        if unknown:
            problems.append(f"unknown attributes: {', '.join(sorted(unknown))}")

        validated = {}
        for attribute in self:
            if attribute.computed:
                continue
            value = desired_state.get(attribute.name)
            if value is None:
                if attribute.required:
                    problems.append(f"{attribute.name} is required")
                continue
            if problem := attribute.check_type(value):
                problems.append(problem)
                continue
            for validator in attribute.validators:
                try:
                    validator(value)
                except ValueError as e:
                    problems.append(f"{attribute.name}: {e}")
            validated[attribute.name] = dict(value) if isinstance(value, Mapping) else value

        if problems:
            raise InvalidDesiredState("; ".join(problems), **error_context)
        return validated

    def changed_attributes(
        self, previous_state: Mapping[str, Any], desired_state: Mapping[str, Any]
    ) -> list[str]:
        """Names of the settable attributes whose effective value differs between the two states."""
        return [
            attribute.name
            for attribute in self
            if not attribute.computed
            and self.effective_value(previous_state, attribute.name)
            != self.effective_value(desired_state, attribute.name)
        ]
