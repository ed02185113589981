from __future__ import annotations

from typing import Optional, TypedDict

from botocore.client import BaseClient

from tfaws.resources.exceptions import RemoteNotFound
from tfaws.resources.identifier import IdentifierCodec
from tfaws.resources.mapper import FieldMapping, RemoteStateMapper
from tfaws.resources.resource_provider import ResourceProvider, call_remote
from tfaws.resources.schema import Attribute, ResourceSchema, string_length_between


class IoTThingPrincipalAttachmentProperties(TypedDict):
    thing: Optional[str]
    principal: Optional[str]


class IoTThingPrincipalAttachmentProvider(ResourceProvider[IoTThingPrincipalAttachmentProperties]):
    """
    Attachment of a principal (certificate, identity) to an IoT thing. The identifier is ``<thing>|<principal>``.
    Both attributes can only be set at creation time, so updates never reach the vendor.
    """

    TYPE = "aws_iot_thing_principal_attachment"
    SERVICE = "iot"

    SCHEMA = ResourceSchema(
        Attribute(
            "thing", required=True, force_new=True, validators=(string_length_between(1, 128),)
        ),
        Attribute("principal", required=True, force_new=True),
    )

    IDENTIFIER = IdentifierCodec("thing", "principal", delimiter="|")

    MAPPER = RemoteStateMapper(
        SCHEMA,
        FieldMapping("thing", "thingName"),
        FieldMapping("principal", "principal"),
    )

    def create_remote(self, client: BaseClient, model: dict) -> None:
        call_remote(client, "attach_thing_principal", **self.MAPPER.to_request(model))

    def read_remote(self, client: BaseClient, key_model: dict) -> dict:
        thing_name = key_model["thing"]
        principal = key_model["principal"]

        params = {"thingName": thing_name}
        while True:
            response = call_remote(client, "list_thing_principals", **params)
            if principal in response.get("principals", []):
                return {"thingName": thing_name, "principal": principal}
            if not response.get("nextToken"):
                break
            params["nextToken"] = response["nextToken"]

        raise RemoteNotFound(f"principal {principal} is not attached to thing {thing_name}")

    def delete_remote(self, client: BaseClient, key_model: dict) -> None:
        call_remote(
            client,
            "detach_thing_principal",
            thingName=key_model["thing"],
            principal=key_model["principal"],
        )
