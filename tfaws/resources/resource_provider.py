from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Generic, Optional, TypedDict, TypeVar

from botocore.client import BaseClient

from tfaws.aws.connect import ClientFactory, ServiceLevelClientFactory, connect_to
from tfaws.aws.errors import remote_call
from tfaws.logging.setup import REMOTE_CALL_LOGGER
from tfaws.resources.exceptions import (
    InvalidDesiredState,
    MalformedIdentifier,
    OperationCancelled,
    RemoteNotFound,
    RemoteRejected,
    RequiresReplacement,
    ResourceProviderError,
)
from tfaws.resources.identifier import IdentifierCodec
from tfaws.resources.mapper import RemoteStateMapper
from tfaws.resources.schema import ResourceSchema

LOG = logging.getLogger(__name__)
REMOTE_LOG = logging.getLogger(REMOTE_CALL_LOGGER)

Properties = TypeVar("Properties")


class OperationStatus(Enum):
    SUCCESS = auto()
    FAILED = auto()


@dataclass
class ProgressEvent(Generic[Properties]):
    status: OperationStatus
    resource_model: Optional[Properties]

    physical_resource_id: Optional[str] = None
    message: str = ""
    error_code: Optional[str] = None

    @property
    def exists(self) -> bool:
        """Whether the event describes a resource that is present on the remote side."""
        return self.status == OperationStatus.SUCCESS and self.resource_model is not None


@dataclass
class ResourceRequest(Generic[Properties]):
    aws_client_factory: ServiceLevelClientFactory

    desired_state: Optional[Properties] = None
    physical_resource_id: Optional[str] = None
    previous_state: Optional[Properties] = None

    request_token: str = field(default_factory=lambda: str(uuid.uuid4()))

    # set by the caller to abort the operation before its next vendor call
    cancel_event: Optional[threading.Event] = None
    # time.monotonic() timestamp after which the operation must not issue further vendor calls
    deadline: Optional[float] = None

    def check_cancelled(self, **error_context) -> None:
        """
        Raises ``OperationCancelled`` if the caller cancelled the request or its deadline has passed.
        """
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise OperationCancelled("operation was cancelled by the caller", **error_context)
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise OperationCancelled("deadline exceeded", **error_context)


class Credentials(TypedDict):
    accessKeyId: str
    secretAccessKey: str
    sessionToken: str


class ResourceProviderPayloadRequestData(TypedDict, total=False):
    resourceProperties: dict
    previousResourceProperties: Optional[dict]
    callerCredentials: Credentials


class ResourceProviderPayload(TypedDict, total=False):
    resourceType: str
    region: str
    physicalResourceId: Optional[str]
    requestData: ResourceProviderPayloadRequestData
    timeoutSeconds: Optional[float]


def convert_payload(
    payload: ResourceProviderPayload, client_factory: ClientFactory = None
) -> ResourceRequest[Properties]:
    """
    Builds a ``ResourceRequest`` from the raw payload sent by the host.

    :param payload: the host payload
    :param client_factory: the factory building the vendor clients, defaults to ``connect_to``
    :return: the resource request
    """
    client_factory = client_factory or connect_to
    request_data = payload.get("requestData") or {}
    credentials = request_data.get("callerCredentials") or {}

    aws_client_factory = client_factory(
        region_name=payload.get("region"),
        aws_access_key_id=credentials.get("accessKeyId"),
        aws_secret_access_key=credentials.get("secretAccessKey"),
        aws_session_token=credentials.get("sessionToken"),
    )
    deadline = None
    if timeout := payload.get("timeoutSeconds"):
        deadline = time.monotonic() + timeout

    return ResourceRequest(
        aws_client_factory=aws_client_factory,
        desired_state=request_data.get("resourceProperties"),
        previous_state=request_data.get("previousResourceProperties"),
        physical_resource_id=payload.get("physicalResourceId"),
        deadline=deadline,
    )


def call_remote(client: BaseClient, operation_name: str, **params) -> dict:
    """
    Invokes a vendor API operation and records the request and response on the remote call logger.

    :param client: the boto client
    :param operation_name: the python name of the operation, e.g. ``describe_thing``
    :param params: the request parameters
    :return: the response
    """
    response = getattr(client, operation_name)(**params)
    if REMOTE_LOG.isEnabledFor(logging.DEBUG):
        REMOTE_LOG.debug(
            "AWS %s.%s",
            client.meta.service_model.service_name,
            operation_name,
            extra={"request": params, "response": response},
        )
    return response


class ResourceProvider(Generic[Properties]):
    """
    This provides a base class onto which the resource type specific reconcilers are built.

    Subclasses declare their ``SCHEMA``, ``IDENTIFIER`` and ``MAPPER``, and implement the vendor calls in the
    ``*_remote`` hooks. The base class drives the lifecycle around them:
    ``Absent -> Creating -> Present -> Updating -> Present -> Deleting -> Absent``. Only ``Present`` and ``Absent``
    are observable between calls, nothing is kept in the provider across calls.
    """

    TYPE: str
    SERVICE: str
    SCHEMA: ResourceSchema
    IDENTIFIER: IdentifierCodec
    MAPPER: RemoteStateMapper

    # service specific vendor error codes signalling a missing resource
    NOT_FOUND_CODES: tuple[str, ...] = ()

    def create_remote(self, client: BaseClient, model: dict) -> None:
        raise NotImplementedError

    def read_remote(self, client: BaseClient, key_model: dict) -> dict:
        """
        Fetches the remote resource addressed by the given keys and returns the response to be flattened by the
        mapper. Raises ``RemoteNotFound`` (or lets the vendor not found error propagate) if it does not exist.
        """
        raise NotImplementedError

    def update_remote(self, client: BaseClient, model: dict, previous_state: dict) -> None:
        raise NotImplementedError

    def delete_remote(self, client: BaseClient, key_model: dict) -> None:
        raise NotImplementedError

    def create(self, request: ResourceRequest[Properties]) -> ProgressEvent[Properties]:
        """
        Creates the remote resource from the desired state, then reads it back. The identifier is only part of the
        returned event once the vendor call has succeeded.
        """
        model = self.SCHEMA.validate(
            request.desired_state, operation="create", resource_type=self.TYPE
        )
        keys = self.IDENTIFIER.keys_from(model)
        try:
            identifier = self.IDENTIFIER.encode(keys)
        except ValueError as e:
            raise InvalidDesiredState(str(e), operation="create", resource_type=self.TYPE) from e

        error_context = {"operation": "create", "resource_type": self.TYPE, "identifier": identifier}
        LOG.debug("Creating %s %s", self.TYPE, identifier)
        request.check_cancelled(**error_context)
        client = self._get_client(request)
        with remote_call(**error_context, not_found_codes=self.NOT_FOUND_CODES):
            self.create_remote(client, model)

        # the remote side effect is applied, but the identifier is not handed out if the caller gave up meanwhile
        request.check_cancelled(**error_context)
        event = self._read(request, identifier, operation="create")
        if not event.exists:
            raise RemoteRejected(
                "resource could not be found after it has been created", **error_context
            )
        LOG.debug("Created %s %s", self.TYPE, identifier)
        return event

    def read(self, request: ResourceRequest[Properties]) -> ProgressEvent[Properties]:
        """
        Refreshes the state of the resource addressed by ``request.physical_resource_id``. A resource that no longer
        exists is not an error: the returned event carries neither a model nor an identifier.
        """
        return self._read(request, request.physical_resource_id, operation="read")

    def import_resource(self, request: ResourceRequest[Properties]) -> ProgressEvent[Properties]:
        return self.read(request)

    def update(self, request: ResourceRequest[Properties]) -> ProgressEvent[Properties]:
        """
        Brings the remote resource in line with the desired state. Nothing is sent if no mutable attribute changed.
        Otherwise the complete set of mutable attributes is sent, since the vendor calls replace the whole state.
        """
        identifier = request.physical_resource_id
        error_context = {"operation": "update", "resource_type": self.TYPE, "identifier": identifier}
        keys = self._decode(identifier, operation="update")
        key_model = self.IDENTIFIER.to_model(keys)
        desired = self.SCHEMA.validate(request.desired_state, **error_context)
        previous = request.previous_state
        if previous is None:
            # nothing to diff against, the remote state takes the place of the previous state
            event = self._read(request, identifier, operation="update")
            if not event.exists:
                raise RemoteNotFound(
                    "resource no longer exists and cannot be updated", **error_context
                )
            previous = event.resource_model

        changed = self.SCHEMA.changed_attributes(previous, desired)
        # key attributes are checked against the identifier below
        replaced = [
            name for name in changed if self.SCHEMA[name].force_new and name not in key_model
        ]
        replaced += [
            name
            for name, value in key_model.items()
            if desired.get(name) != value and name not in replaced
        ]
        if replaced:
            raise RequiresReplacement(
                f"changing {', '.join(replaced)} requires the resource to be replaced",
                attributes=replaced,
                **error_context,
            )

        model = {**desired, **key_model}
        if not any(self.SCHEMA[name].mutable for name in changed):
            LOG.debug("No changes to apply to %s %s", self.TYPE, identifier)
            return ProgressEvent(
                status=OperationStatus.SUCCESS,
                resource_model={**previous, **model},
                physical_resource_id=identifier,
            )

        LOG.debug("Updating %s %s, changed attributes: %s", self.TYPE, identifier, changed)
        request.check_cancelled(**error_context)
        client = self._get_client(request)
        try:
            with remote_call(**error_context, not_found_codes=self.NOT_FOUND_CODES):
                self.update_remote(client, model, previous)
        except RemoteNotFound as e:
            raise RemoteNotFound(
                f"resource no longer exists and cannot be updated ({e.message})",
                vendor_error_code=e.vendor_error_code,
                **error_context,
            ) from e

        request.check_cancelled(**error_context)
        event = self._read(request, identifier, operation="update")
        if not event.exists:
            raise RemoteNotFound(
                "resource disappeared while it was being updated", **error_context
            )
        return event

    def delete(self, request: ResourceRequest[Properties]) -> ProgressEvent[Properties]:
        """
        Deletes the remote resource. Deleting a resource which does not exist (anymore) succeeds.
        """
        identifier = request.physical_resource_id
        error_context = {"operation": "delete", "resource_type": self.TYPE, "identifier": identifier}
        keys = self._decode(identifier, operation="delete")

        LOG.debug("Deleting %s %s", self.TYPE, identifier)
        request.check_cancelled(**error_context)
        client = self._get_client(request)
        try:
            with remote_call(**error_context, not_found_codes=self.NOT_FOUND_CODES):
                self.delete_remote(client, self.IDENTIFIER.to_model(keys))
        except RemoteNotFound:
            LOG.debug("%s %s is already gone", self.TYPE, identifier)

        return ProgressEvent(status=OperationStatus.SUCCESS, resource_model=None)

    def _read(
        self, request: ResourceRequest[Properties], identifier: str, operation: str
    ) -> ProgressEvent[Properties]:
        error_context = {"operation": operation, "resource_type": self.TYPE, "identifier": identifier}
        keys = self._decode(identifier, operation=operation)
        key_model = self.IDENTIFIER.to_model(keys)

        request.check_cancelled(**error_context)
        client = self._get_client(request)
        try:
            with remote_call(**error_context, not_found_codes=self.NOT_FOUND_CODES):
                response = self.read_remote(client, key_model)
        except RemoteNotFound:
            if operation == "read":
                LOG.warning("%s %s not found, removing from state", self.TYPE, identifier)
            return ProgressEvent(
                status=OperationStatus.SUCCESS,
                resource_model=None,
                message=f"{self.TYPE} {identifier} not found",
            )

        model = self.MAPPER.from_response(response)
        for name, value in key_model.items():
            if model.get(name) is None:
                model[name] = value
        return ProgressEvent(
            status=OperationStatus.SUCCESS, resource_model=model, physical_resource_id=identifier
        )

    def _decode(self, identifier: Optional[str], operation: str) -> tuple[str, ...]:
        try:
            return self.IDENTIFIER.decode(identifier)
        except MalformedIdentifier as e:
            e.operation = operation
            e.resource_type = self.TYPE
            e.identifier = identifier
            raise

    def _get_client(self, request: ResourceRequest[Properties]) -> BaseClient:
        return request.aws_client_factory.get_client(self.SERVICE)


class ResourceProviderExecutor:
    """
    Point of abstraction between the host and the resource providers. Dispatches host actions to the provider and
    turns resource provider errors into failed progress events.
    """

    def __init__(self, resource_provider: ResourceProvider):
        self.resource_provider = resource_provider

    def execute_action(
        self, action: str, request: ResourceRequest[Properties]
    ) -> ProgressEvent[Properties]:
        provider = self.resource_provider
        try:
            match action:
                case "Add":
                    return provider.create(request)
                case "Modify":
                    return provider.update(request)
                case "Remove":
                    return provider.delete(request)
                case "Read":
                    return provider.read(request)
                case "Import":
                    return provider.import_resource(request)
                case _:
                    raise NotImplementedError(action)
        except OperationCancelled:
            raise
        except ResourceProviderError as e:
            LOG.warning("%s of %s failed: %s", action, provider.TYPE, e)
            return self._failed_event(action, request, e)

    def _failed_event(
        self, action: str, request: ResourceRequest[Properties], error: ResourceProviderError
    ) -> ProgressEvent[Properties]:
        event = ProgressEvent(
            status=OperationStatus.FAILED,
            resource_model=None,
            message=str(error),
            error_code=error.error_code,
        )
        if action != "Add":
            # keep the last known good state of an existing resource
            event.resource_model = request.previous_state
            event.physical_resource_id = request.physical_resource_id
        return event
