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

IDENTITY_POOL_ID_PATTERN = r"^[\w-]+:[0-9a-f-]+$"


class CognitoIdentityPoolProviderPrincipalTagProperties(TypedDict):
    identity_pool_id: Optional[str]
    identity_provider_name: Optional[str]
    principal_tags: Optional[dict[str, str]]
    use_defaults: Optional[bool]


class CognitoIdentityPoolProviderPrincipalTagProvider(
    ResourceProvider[CognitoIdentityPoolProviderPrincipalTagProperties]
):
    """
    Principal tag attribute mappings of an identity provider of a Cognito identity pool.

    The identifier is ``<identity_pool_id>:<identity_provider_name>``. Identity pool ids contain a colon themselves
    (``<region>:<guid>``), so the provider name is always the last segment.
    """

    TYPE = "aws_cognito_identity_pool_provider_principal_tag"
    SERVICE = "cognito-identity"

    SCHEMA = ResourceSchema(
        Attribute(
            "identity_pool_id",
            required=True,
            force_new=True,
            validators=(
                string_length_between(1, 55),
                string_matches(
                    IDENTITY_POOL_ID_PATTERN,
                    "see https://docs.aws.amazon.com/cognitoidentity/latest/APIReference/API_SetPrincipalTagAttributeMap.html",
                ),
            ),
        ),
        Attribute(
            "identity_provider_name",
            required=True,
            force_new=True,
            validators=(string_length_between(1, 128),),
        ),
        Attribute("principal_tags", AttributeType.STRING_MAP),
        Attribute("use_defaults", AttributeType.BOOLEAN, default=True),
    )

    IDENTIFIER = IdentifierCodec(
        "identity_pool_id",
        "identity_provider_name",
        delimiter=":",
        open_key="identity_pool_id",
        min_segments=3,
    )

    MAPPER = RemoteStateMapper(
        SCHEMA,
        FieldMapping("identity_pool_id", "IdentityPoolId"),
        FieldMapping("identity_provider_name", "IdentityProviderName"),
        FieldMapping("principal_tags", "PrincipalTags"),
        FieldMapping("use_defaults", "UseDefaults"),
    )

    def create_remote(self, client: BaseClient, model: dict) -> None:
        call_remote(client, "set_principal_tag_attribute_map", **self.MAPPER.to_request(model))

    def read_remote(self, client: BaseClient, key_model: dict) -> dict:
        return call_remote(
            client,
            "get_principal_tag_attribute_map",
            IdentityPoolId=key_model["identity_pool_id"],
            IdentityProviderName=key_model["identity_provider_name"],
        )

    def update_remote(self, client: BaseClient, model: dict, previous_state: dict) -> None:
        call_remote(client, "set_principal_tag_attribute_map", **self.MAPPER.full_request(model))

    def delete_remote(self, client: BaseClient, key_model: dict) -> None:
        # there is no delete call, the mapping is reset to the defaults instead
        call_remote(
            client,
            "set_principal_tag_attribute_map",
            IdentityPoolId=key_model["identity_pool_id"],
            IdentityProviderName=key_model["identity_provider_name"],
            UseDefaults=True,
            PrincipalTags={},
        )
