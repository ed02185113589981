"""
Translation between resource attributes and the request/response shapes of the vendor API.

Mappers are pure: they never call the vendor themselves.
"""
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from tfaws.resources.schema import AttributeType, ResourceSchema
from tfaws.utils.collections import get_nested, set_nested


@dataclass(frozen=True)
class FieldMapping:
    """
    Maps one resource attribute onto a request parameter and a response field.

    :param attribute: name of the resource attribute
    :param parameter: dotted path of the request parameter, e.g. ``attributePayload.attributes``
    :param response_field: dotted path of the field in the read response, defaults to ``parameter``
    :param expand: converts the attribute value into the request value
    :param flatten: converts the response value into the attribute value
    """

    attribute: str
    parameter: str
    response_field: Optional[str] = None
    expand: Optional[Callable[[Any], Any]] = None
    flatten: Optional[Callable[[Any], Any]] = None


class RemoteStateMapper:
    """
    Expands resource attributes into vendor requests, and flattens vendor responses into resource attributes.
    """

    def __init__(self, schema: ResourceSchema, *fields: FieldMapping):
        unknown = [field.attribute for field in fields if field.attribute not in schema]
        if unknown:
            raise ValueError(f"Mapped attributes missing from the schema: {', '.join(unknown)}")
        self.schema = schema
        self.fields = fields

    def to_request(self, model: Mapping[str, Any]) -> dict:
        """
        Builds the request parameters for the given model. Attributes absent from the model are omitted, unless
        the attribute defines a default-on-absence value.

        :param model: the validated desired state, including the key attributes
        :return: the request parameters
        """
        params = {}
        for field in self._settable_fields():
            value = model.get(field.attribute)
            if value is None:
                value = self.schema[field.attribute].default
            if value is None:
                continue
            set_nested(params, field.parameter, field.expand(value) if field.expand else value)
        return params

    def full_request(self, model: Mapping[str, Any]) -> dict:
        """
        Builds the request parameters for a call with replace semantics. Every mutable attribute is sent, an unset
        one with its default or empty value, so that the call never keeps stale values of attributes the model does
        not mention.

        :param model: the validated desired state, including the key attributes
        :return: the request parameters
        """
        params = {}
        for field in self._settable_fields():
            value = self.schema.effective_value(model, field.attribute)
            if value is None:
                continue
            set_nested(params, field.parameter, field.expand(value) if field.expand else value)
        return params

    def from_response(self, response: Mapping[str, Any]) -> dict:
        """
        Flattens a read response into resource attributes. Every mapped attribute is set, including the ones
        assigned by the vendor. Absent map attributes are returned as empty maps.

        :param response: the vendor response
        :return: the resource attributes
        """
        model = {}
        for field in self.fields:
            value = get_nested(response, field.response_field or field.parameter)
            if field.flatten and value is not None:
                value = field.flatten(value)
            if value is None and self.schema[field.attribute].type is AttributeType.STRING_MAP:
                value = {}
            model[field.attribute] = value
        return model

    def _settable_fields(self) -> list[FieldMapping]:
        return [field for field in self.fields if not self.schema[field.attribute].computed]
