import pytest

from tfaws.testing.config import (
    TEST_AWS_ACCESS_KEY_ID,
    TEST_AWS_REGION_NAME,
    TEST_AWS_SECRET_ACCESS_KEY,
)


@pytest.fixture
def aws_session():
    """
    This fixture returns a Boto Session with static test credentials, so no credentials are looked up on the host.
    """
    from boto3.session import Session

    return Session(
        aws_access_key_id=TEST_AWS_ACCESS_KEY_ID,
        aws_secret_access_key=TEST_AWS_SECRET_ACCESS_KEY,
        region_name=TEST_AWS_REGION_NAME,
    )


@pytest.fixture
def client_factory(aws_session):
    """
    This fixture returns a client factory building its clients from the test session.
    """
    from tfaws.aws.connect import ClientFactory

    return ClientFactory(session=aws_session)


@pytest.fixture
def stub_service(client_factory):
    """
    Activates a botocore Stubber on the client the resource providers receive for the given service. Every
    response has to be queued on the stubber, any unexpected call fails the test.
    """
    from botocore.stub import Stubber

    stubbers = []

    def _stub(service: str) -> Stubber:
        stubber = Stubber(client_factory.get_client(service))
        stubber.activate()
        stubbers.append(stubber)
        return stubber

    yield _stub

    for stubber in stubbers:
        stubber.deactivate()


@pytest.fixture
def create_request(client_factory):
    """
    Factory for resource requests using the test client factory.
    """
    from tfaws.resources.resource_provider import ResourceRequest

    def _create(**kwargs) -> ResourceRequest:
        return ResourceRequest(aws_client_factory=client_factory(), **kwargs)

    return _create
