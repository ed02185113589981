from __future__ import annotations

from typing import Optional, TypedDict

from botocore.client import BaseClient

from tfaws.resources.identifier import IdentifierCodec
from tfaws.resources.mapper import FieldMapping, RemoteStateMapper
from tfaws.resources.resource_provider import ResourceProvider, call_remote
from tfaws.resources.schema import (
    Attribute,
    ResourceSchema,
    string_in,
    string_length_between,
    string_matches,
)

APPLICATION_ARN_PATTERN = r"^arn:(aws|aws-us-gov|aws-cn|aws-iso|aws-iso-b):sso::\d{12}:application/(sso)?ins-[a-zA-Z0-9-.]{16}/apl-[a-zA-Z0-9]{16}$"

PRINCIPAL_TYPES = ("USER", "GROUP")


class SSOAdminApplicationAssignmentProperties(TypedDict):
    application_arn: Optional[str]
    principal_id: Optional[str]
    principal_type: Optional[str]


class SSOAdminApplicationAssignmentProvider(
    ResourceProvider[SSOAdminApplicationAssignmentProperties]
):
    """
    Assignment of a user or group to an IAM Identity Center application.

    The identifier is ``<application_arn>,<principal_id>,<principal_type>``.
    """

    TYPE = "aws_ssoadmin_application_assignment"
    SERVICE = "sso-admin"

    SCHEMA = ResourceSchema(
        Attribute(
            "application_arn",
            required=True,
            force_new=True,
            validators=(string_matches(APPLICATION_ARN_PATTERN),),
        ),
        Attribute(
            "principal_id",
            required=True,
            force_new=True,
            validators=(string_length_between(1, 47),),
        ),
        Attribute(
            "principal_type",
            required=True,
            force_new=True,
            validators=(string_in(*PRINCIPAL_TYPES),),
        ),
    )

    IDENTIFIER = IdentifierCodec("application_arn", "principal_id", "principal_type", delimiter=",")

    MAPPER = RemoteStateMapper(
        SCHEMA,
        FieldMapping("application_arn", "ApplicationArn"),
        FieldMapping("principal_id", "PrincipalId"),
        FieldMapping("principal_type", "PrincipalType"),
    )

    def create_remote(self, client: BaseClient, model: dict) -> None:
        call_remote(client, "create_application_assignment", **self.MAPPER.to_request(model))

    def read_remote(self, client: BaseClient, key_model: dict) -> dict:
        return call_remote(
            client, "describe_application_assignment", **self.MAPPER.to_request(key_model)
        )

    def delete_remote(self, client: BaseClient, key_model: dict) -> None:
        call_remote(client, "delete_application_assignment", **self.MAPPER.to_request(key_model))
