import threading
import time
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from tfaws.resources.exceptions import (
    InvalidDesiredState,
    MalformedIdentifier,
    OperationCancelled,
    RemoteNotFound,
    RemoteRejected,
    RequiresReplacement,
)
from tfaws.resources.identifier import IdentifierCodec
from tfaws.resources.mapper import FieldMapping, RemoteStateMapper
from tfaws.resources.resource_provider import (
    OperationStatus,
    ResourceProvider,
    ResourceProviderExecutor,
    ResourceRequest,
    convert_payload,
)
from tfaws.resources.schema import Attribute, AttributeType, ResourceSchema


def client_error(code: str, status_code: int = 400) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": f"{code} raised"},
            "ResponseMetadata": {"HTTPStatusCode": status_code},
        },
        "operation",
    )


class WidgetProvider(ResourceProvider[dict]):
    TYPE = "test_widget"
    SERVICE = "widgets"

    SCHEMA = ResourceSchema(
        Attribute("owner", required=True, force_new=True),
        Attribute("name", required=True, force_new=True),
        Attribute("labels", AttributeType.STRING_MAP),
        Attribute("enabled", AttributeType.BOOLEAN, default=True),
        Attribute("arn", computed=True),
    )

    IDENTIFIER = IdentifierCodec("owner", "name", delimiter="/")

    MAPPER = RemoteStateMapper(
        SCHEMA,
        FieldMapping("owner", "Owner"),
        FieldMapping("name", "Name"),
        FieldMapping("labels", "Labels"),
        FieldMapping("enabled", "Enabled"),
        FieldMapping("arn", "Arn"),
    )

    def create_remote(self, client, model):
        client.create_widget(**self.MAPPER.to_request(model))

    def read_remote(self, client, key_model):
        return client.get_widget(Owner=key_model["owner"], Name=key_model["name"])

    def update_remote(self, client, model, previous_state):
        client.put_widget(**self.MAPPER.full_request(model))

    def delete_remote(self, client, key_model):
        client.delete_widget(Owner=key_model["owner"], Name=key_model["name"])


WIDGET_RESPONSE = {
    "Owner": "alice",
    "Name": "widget",
    "Labels": {"team": "infra"},
    "Enabled": True,
    "Arn": "arn:widget:alice/widget",
}

WIDGET_MODEL = {
    "owner": "alice",
    "name": "widget",
    "labels": {"team": "infra"},
    "enabled": True,
    "arn": "arn:widget:alice/widget",
}


@pytest.fixture
def widgets():
    """The mocked vendor client handed to the provider"""
    client = MagicMock()
    client.get_widget.return_value = WIDGET_RESPONSE
    return client


@pytest.fixture
def aws_client_factory(widgets):
    factory = MagicMock()
    factory.get_client.return_value = widgets
    return factory


@pytest.fixture
def widget_request(aws_client_factory):
    def _create(**kwargs) -> ResourceRequest:
        return ResourceRequest(aws_client_factory=aws_client_factory, **kwargs)

    return _create


provider = WidgetProvider()


class TestCreate:
    def test_create_assigns_identifier_and_reads_back(self, widget_request, widgets):
        event = provider.create(
            widget_request(desired_state={"owner": "alice", "name": "widget", "labels": {"team": "infra"}})
        )

        widgets.create_widget.assert_called_once_with(
            Owner="alice", Name="widget", Labels={"team": "infra"}, Enabled=True
        )
        widgets.get_widget.assert_called_once_with(Owner="alice", Name="widget")
        assert event.status == OperationStatus.SUCCESS
        assert event.physical_resource_id == "alice/widget"
        assert event.resource_model == WIDGET_MODEL

    def test_create_does_not_mutate_desired_state(self, widget_request):
        desired = {"owner": "alice", "name": "widget", "labels": {"team": "infra"}}
        provider.create(widget_request(desired_state=desired))
        assert desired == {"owner": "alice", "name": "widget", "labels": {"team": "infra"}}

    def test_create_rejected(self, widget_request, widgets):
        widgets.create_widget.side_effect = client_error("LimitExceededException")

        with pytest.raises(RemoteRejected) as e:
            provider.create(widget_request(desired_state={"owner": "alice", "name": "widget"}))

        assert e.value.vendor_error_code == "LimitExceededException"
        assert e.value.operation == "create"
        assert e.value.identifier == "alice/widget"
        widgets.get_widget.assert_not_called()

    def test_create_transport_error(self, widget_request, widgets):
        widgets.create_widget.side_effect = EndpointConnectionError(endpoint_url="https://widgets")

        with pytest.raises(RemoteRejected):
            provider.create(widget_request(desired_state={"owner": "alice", "name": "widget"}))

    def test_create_invalid_desired_state(self, widget_request, widgets):
        with pytest.raises(InvalidDesiredState):
            provider.create(widget_request(desired_state={"owner": "alice"}))
        widgets.create_widget.assert_not_called()

    def test_create_key_containing_delimiter(self, widget_request, widgets):
        with pytest.raises(InvalidDesiredState):
            provider.create(widget_request(desired_state={"owner": "alice/bob", "name": "widget"}))
        widgets.create_widget.assert_not_called()

    def test_create_not_found_on_read_back(self, widget_request, widgets):
        widgets.get_widget.side_effect = client_error("ResourceNotFoundException", 404)

        with pytest.raises(RemoteRejected):
            provider.create(widget_request(desired_state={"owner": "alice", "name": "widget"}))


class TestRead:
    def test_read(self, widget_request):
        event = provider.read(widget_request(physical_resource_id="alice/widget"))

        assert event.exists
        assert event.physical_resource_id == "alice/widget"
        assert event.resource_model == WIDGET_MODEL

    @pytest.mark.parametrize(
        "error", [client_error("ResourceNotFoundException"), client_error("Gone", 404)]
    )
    def test_read_not_found(self, widget_request, widgets, error):
        widgets.get_widget.side_effect = error

        event = provider.read(widget_request(physical_resource_id="alice/widget"))

        assert event.status == OperationStatus.SUCCESS
        assert not event.exists
        assert event.resource_model is None
        assert event.physical_resource_id is None

    def test_read_malformed_identifier(self, widget_request, widgets):
        with pytest.raises(MalformedIdentifier) as e:
            provider.read(widget_request(physical_resource_id="widget"))

        assert e.value.operation == "read"
        assert e.value.resource_type == "test_widget"
        widgets.get_widget.assert_not_called()

    def test_read_error(self, widget_request, widgets):
        widgets.get_widget.side_effect = client_error("AccessDeniedException")

        with pytest.raises(RemoteRejected) as e:
            provider.read(widget_request(physical_resource_id="alice/widget"))
        assert not isinstance(e.value, RemoteNotFound)

    def test_import_behaves_like_read(self, widget_request):
        request = widget_request(physical_resource_id="alice/widget")
        assert provider.import_resource(request) == provider.read(request)

    def test_keys_are_taken_from_identifier_when_response_lacks_them(
        self, widget_request, widgets
    ):
        widgets.get_widget.return_value = {"Labels": {}, "Enabled": False}

        event = provider.read(widget_request(physical_resource_id="alice/widget"))

        assert event.resource_model["owner"] == "alice"
        assert event.resource_model["name"] == "widget"


class TestUpdate:
    def test_no_changes_performs_no_calls(self, widget_request, aws_client_factory, widgets):
        request = widget_request(
            physical_resource_id="alice/widget",
            previous_state=WIDGET_MODEL,
            desired_state={"owner": "alice", "name": "widget", "labels": {"team": "infra"}},
        )

        event = provider.update(request)

        assert event.status == OperationStatus.SUCCESS
        assert event.physical_resource_id == "alice/widget"
        assert event.resource_model == WIDGET_MODEL
        aws_client_factory.get_client.assert_not_called()
        assert widgets.mock_calls == []

    def test_update_sends_complete_attribute_set(self, widget_request, widgets):
        request = widget_request(
            physical_resource_id="alice/widget",
            previous_state=WIDGET_MODEL,
            desired_state={
                "owner": "alice",
                "name": "widget",
                "labels": {"team": "infra"},
                "enabled": False,
            },
        )

        event = provider.update(request)

        # unchanged labels are sent along with the changed flag
        widgets.put_widget.assert_called_once_with(
            Owner="alice", Name="widget", Labels={"team": "infra"}, Enabled=False
        )
        widgets.get_widget.assert_called_once()
        assert event.exists

    def test_update_resets_removed_attributes(self, widget_request, widgets):
        request = widget_request(
            physical_resource_id="alice/widget",
            previous_state=WIDGET_MODEL,
            desired_state={"owner": "alice", "name": "widget"},
        )

        provider.update(request)

        widgets.put_widget.assert_called_once_with(
            Owner="alice", Name="widget", Labels={}, Enabled=True
        )

    def test_update_force_new_attribute(self, widget_request, widgets):
        request = widget_request(
            physical_resource_id="alice/widget",
            previous_state=WIDGET_MODEL,
            desired_state={"owner": "alice", "name": "gadget"},
        )

        with pytest.raises(RequiresReplacement) as e:
            provider.update(request)

        assert e.value.attributes == ["name"]
        assert widgets.mock_calls == []

    def test_update_without_previous_state_diffs_against_remote_state(
        self, widget_request, widgets
    ):
        request = widget_request(
            physical_resource_id="alice/widget",
            desired_state={
                "owner": "alice",
                "name": "widget",
                "labels": {"team": "infra"},
                "enabled": False,
            },
        )

        event = provider.update(request)

        widgets.put_widget.assert_called_once_with(
            Owner="alice", Name="widget", Labels={"team": "infra"}, Enabled=False
        )
        assert widgets.get_widget.call_count == 2
        assert event.exists

    def test_update_without_previous_state_or_changes(self, widget_request, widgets):
        request = widget_request(
            physical_resource_id="alice/widget",
            desired_state={"owner": "alice", "name": "widget", "labels": {"team": "infra"}},
        )

        event = provider.update(request)

        widgets.put_widget.assert_not_called()
        assert event.resource_model == WIDGET_MODEL

    def test_update_without_previous_state_of_vanished_resource(self, widget_request, widgets):
        widgets.get_widget.side_effect = client_error("ResourceNotFoundException", 404)
        request = widget_request(
            physical_resource_id="alice/widget",
            desired_state={"owner": "alice", "name": "widget"},
        )

        with pytest.raises(RemoteNotFound):
            provider.update(request)
        widgets.put_widget.assert_not_called()

    def test_update_not_found(self, widget_request, widgets):
        widgets.put_widget.side_effect = client_error("ResourceNotFoundException", 404)
        request = widget_request(
            physical_resource_id="alice/widget",
            previous_state=WIDGET_MODEL,
            desired_state={"owner": "alice", "name": "widget", "enabled": False},
        )

        with pytest.raises(RemoteNotFound) as e:
            provider.update(request)

        assert isinstance(e.value, RemoteRejected)
        assert "no longer exists" in str(e.value)
        assert e.value.operation == "update"

    def test_failed_update_keeps_previous_state(self, widget_request, widgets):
        widgets.put_widget.side_effect = client_error("ValidationException")
        previous = dict(WIDGET_MODEL)
        request = widget_request(
            physical_resource_id="alice/widget",
            previous_state=previous,
            desired_state={"owner": "alice", "name": "widget", "enabled": False},
        )

        with pytest.raises(RemoteRejected):
            provider.update(request)

        assert request.physical_resource_id == "alice/widget"
        assert request.previous_state == WIDGET_MODEL


class TestDelete:
    def test_delete(self, widget_request, widgets):
        event = provider.delete(widget_request(physical_resource_id="alice/widget"))

        widgets.delete_widget.assert_called_once_with(Owner="alice", Name="widget")
        assert event.status == OperationStatus.SUCCESS
        assert not event.exists

    def test_delete_is_idempotent(self, widget_request, widgets):
        widgets.delete_widget.side_effect = [None, client_error("ResourceNotFoundException", 404)]
        request = widget_request(physical_resource_id="alice/widget")

        assert provider.delete(request).status == OperationStatus.SUCCESS
        assert provider.delete(request).status == OperationStatus.SUCCESS
        assert widgets.delete_widget.call_count == 2

    def test_delete_error(self, widget_request, widgets):
        widgets.delete_widget.side_effect = client_error("ConflictException")

        with pytest.raises(RemoteRejected):
            provider.delete(widget_request(physical_resource_id="alice/widget"))


class TestCancellation:
    def test_cancelled_before_create(self, widget_request, widgets):
        cancel_event = threading.Event()
        cancel_event.set()

        with pytest.raises(OperationCancelled):
            provider.create(
                widget_request(
                    desired_state={"owner": "alice", "name": "widget"}, cancel_event=cancel_event
                )
            )
        widgets.create_widget.assert_not_called()

    def test_cancelled_during_create_assigns_no_identifier(self, widget_request, widgets):
        cancel_event = threading.Event()
        widgets.create_widget.side_effect = lambda **kwargs: cancel_event.set()

        with pytest.raises(OperationCancelled) as e:
            provider.create(
                widget_request(
                    desired_state={"owner": "alice", "name": "widget"}, cancel_event=cancel_event
                )
            )

        assert e.value.operation == "create"
        widgets.get_widget.assert_not_called()

    def test_deadline_exceeded(self, widget_request, widgets):
        request = widget_request(
            physical_resource_id="alice/widget", deadline=time.monotonic() - 1
        )

        with pytest.raises(OperationCancelled):
            provider.delete(request)
        widgets.delete_widget.assert_not_called()


class TestResourceProviderExecutor:
    executor = ResourceProviderExecutor(provider)

    def test_add(self, widget_request):
        event = self.executor.execute_action(
            "Add", widget_request(desired_state={"owner": "alice", "name": "widget"})
        )
        assert event.status == OperationStatus.SUCCESS
        assert event.physical_resource_id == "alice/widget"

    def test_failed_add_has_no_identifier(self, widget_request, widgets):
        widgets.create_widget.side_effect = client_error("LimitExceededException")

        event = self.executor.execute_action(
            "Add", widget_request(desired_state={"owner": "alice", "name": "widget"})
        )

        assert event.status == OperationStatus.FAILED
        assert event.physical_resource_id is None
        assert event.resource_model is None
        assert event.error_code == "ServiceInternalError"
        assert "LimitExceededException" in event.message

    def test_failed_modify_keeps_last_known_state(self, widget_request, widgets):
        widgets.put_widget.side_effect = client_error("ValidationException")

        event = self.executor.execute_action(
            "Modify",
            widget_request(
                physical_resource_id="alice/widget",
                previous_state=WIDGET_MODEL,
                desired_state={"owner": "alice", "name": "widget", "enabled": False},
            ),
        )

        assert event.status == OperationStatus.FAILED
        assert event.physical_resource_id == "alice/widget"
        assert event.resource_model == WIDGET_MODEL

    def test_malformed_identifier(self, widget_request):
        event = self.executor.execute_action("Read", widget_request(physical_resource_id="x"))

        assert event.status == OperationStatus.FAILED
        assert event.error_code == "InvalidRequest"

    @pytest.mark.parametrize("action", ["Read", "Import"])
    def test_read_actions(self, widget_request, action):
        event = self.executor.execute_action(
            action, widget_request(physical_resource_id="alice/widget")
        )
        assert event.resource_model == WIDGET_MODEL

    def test_remove(self, widget_request, widgets):
        event = self.executor.execute_action(
            "Remove", widget_request(physical_resource_id="alice/widget")
        )
        assert event.status == OperationStatus.SUCCESS
        widgets.delete_widget.assert_called_once()

    def test_cancellation_is_not_converted(self, widget_request):
        cancel_event = threading.Event()
        cancel_event.set()

        with pytest.raises(OperationCancelled):
            self.executor.execute_action(
                "Remove",
                widget_request(physical_resource_id="alice/widget", cancel_event=cancel_event),
            )

    def test_unknown_action(self, widget_request):
        with pytest.raises(NotImplementedError):
            self.executor.execute_action("Rename", widget_request())


def test_convert_payload():
    client_factory = MagicMock()
    payload = {
        "resourceType": "test_widget",
        "region": "eu-central-1",
        "physicalResourceId": "alice/widget",
        "requestData": {
            "resourceProperties": {"owner": "alice", "name": "widget"},
            "previousResourceProperties": WIDGET_MODEL,
            "callerCredentials": {
                "accessKeyId": "AKID",
                "secretAccessKey": "SECRET",
                "sessionToken": "TOKEN",
            },
        },
        "timeoutSeconds": 60,
    }

    request = convert_payload(payload, client_factory=client_factory)

    client_factory.assert_called_once_with(
        region_name="eu-central-1",
        aws_access_key_id="AKID",
        aws_secret_access_key="SECRET",
        aws_session_token="TOKEN",
    )
    assert request.aws_client_factory is client_factory.return_value
    assert request.desired_state == {"owner": "alice", "name": "widget"}
    assert request.previous_state == WIDGET_MODEL
    assert request.physical_resource_id == "alice/widget"
    assert request.deadline > time.monotonic()
