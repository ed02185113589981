from __future__ import annotations

from typing import Optional, TypedDict

from botocore.client import BaseClient

from tfaws.resources.identifier import IdentifierCodec
from tfaws.resources.mapper import FieldMapping, RemoteStateMapper
from tfaws.resources.resource_provider import ResourceProvider, call_remote
from tfaws.resources.schema import (
    Attribute,
    AttributeType,
    ResourceSchema,
    string_length_between,
    string_matches,
)

THING_NAME_PATTERN = r"^[a-zA-Z0-9:_-]+$"


class IoTThingProperties(TypedDict):
    name: Optional[str]
    thing_type_name: Optional[str]
    attributes: Optional[dict[str, str]]
    arn: Optional[str]
    default_client_id: Optional[str]
    version: Optional[int]


class IoTThingProvider(ResourceProvider[IoTThingProperties]):
    """
    An IoT thing. The identifier is the thing name.
    """

    TYPE = "aws_iot_thing"
    SERVICE = "iot"

    SCHEMA = ResourceSchema(
        Attribute(
            "name",
            required=True,
            force_new=True,
            validators=(string_length_between(1, 128), string_matches(THING_NAME_PATTERN)),
        ),
        Attribute(
            "thing_type_name",
            validators=(string_length_between(1, 128), string_matches(THING_NAME_PATTERN)),
        ),
        Attribute("attributes", AttributeType.STRING_MAP),
        Attribute("arn", computed=True),
        Attribute("default_client_id", computed=True),
        Attribute("version", AttributeType.INTEGER, computed=True),
    )

    IDENTIFIER = IdentifierCodec("name")

    MAPPER = RemoteStateMapper(
        SCHEMA,
        FieldMapping("name", "thingName"),
        FieldMapping("thing_type_name", "thingTypeName"),
        FieldMapping("attributes", "attributePayload.attributes", response_field="attributes"),
        FieldMapping("arn", "thingArn"),
        FieldMapping("default_client_id", "defaultClientId"),
        FieldMapping("version", "version"),
    )

    def create_remote(self, client: BaseClient, model: dict) -> None:
        call_remote(client, "create_thing", **self.MAPPER.to_request(model))

    def read_remote(self, client: BaseClient, key_model: dict) -> dict:
        return call_remote(client, "describe_thing", thingName=key_model["name"])

    def update_remote(self, client: BaseClient, model: dict, previous_state: dict) -> None:
        params = self.MAPPER.full_request(model)
        # replace the attributes instead of merging them into the existing ones
        params["attributePayload"]["merge"] = False
        if not model.get("thing_type_name") and previous_state.get("thing_type_name"):
            params["removeThingType"] = True
        call_remote(client, "update_thing", **params)

    def delete_remote(self, client: BaseClient, key_model: dict) -> None:
        call_remote(client, "delete_thing", thingName=key_model["name"])
