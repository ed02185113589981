"""
tfaws client stack.

This module provides the boto3 clients the resource providers talk to. Clients are never read from ambient global
state inside a provider: every ``ResourceRequest`` carries a ``ServiceLevelClientFactory`` which hands out the clients
for the request's region and credentials.
"""
import logging
import threading
from typing import Optional

from boto3.session import Session
from botocore.client import BaseClient
from botocore.config import Config

from tfaws import config as tfaws_config

LOG = logging.getLogger(__name__)


def attribute_name_to_service_name(attribute_name):
    """
    Converts a python-compatible attribute name to the boto service name
    :param attribute_name: Python compatible attribute name using the following replacements:
                            a) Add an underscore suffix `_` to any reserved Python keyword (PEP-8).
                            b) Replace any dash `-` with an underscore `_`
    :return:
    """
    if attribute_name.endswith("_"):
        # lambda_ -> lambda
        attribute_name = attribute_name[:-1]
    # replace all _ with -: cognito_identity -> cognito-identity
    return attribute_name.replace("_", "-")


class ServiceLevelClientFactory:
    """
    A service level client factory, preseeded with parameters for the boto3 client creation.
    Will create any service client with parameters already provided by the ClientFactory.
    """

    def __init__(
        self, *, factory: "ClientFactory", client_creation_params: dict[str, str | Config | None]
    ):
        self._factory = factory
        self._client_creation_params = client_creation_params

    def get_client(self, service: str):
        return self._factory.get_client(service_name=service, **self._client_creation_params)

    def __getattr__(self, service: str):
        if service.startswith("__"):
            raise AttributeError(service)
        service = attribute_name_to_service_name(service)
        return self._factory.get_client(service_name=service, **self._client_creation_params)


class ClientFactory:
    """
    Factory to build the AWS clients.

    Boto client creation is resource intensive. This class caches all Boto
    clients it creates and must be used instead of directly using boto lib.
    """

    def __init__(
        self,
        use_ssl: bool = True,
        verify: bool = True,
        session: Session = None,
        config: Config = None,
    ):
        """
        :param use_ssl: Whether to use SSL
        :param verify: Whether to verify SSL certificates
        :param session: Session to be used for client creation. Will create a new session if not provided.
            Please note that sessions are not generally thread safe.
            Either create a new session for each factory or make sure the session is not shared with another thread.
            The factory itself has a lock for the session, so as long as you only use the session in one factory,
            it should be fine using the factory in a multithreaded context.
        :param config: Config used as default for client creation.
        """
        self._use_ssl = use_ssl
        self._verify = verify
        self._config: Config = config or Config(
            max_pool_connections=tfaws_config.MAX_POOL_CONNECTIONS
        )
        self._session: Session = session or Session()
        self._clients: dict[tuple, BaseClient] = {}
        self._create_client_lock = threading.RLock()

    def __call__(
        self,
        *,
        region_name: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        aws_session_token: Optional[str] = None,
        endpoint_url: str = None,
    ) -> ServiceLevelClientFactory:
        """
        Get back an object which lets you select the typed service you want to access with the given attributes

        :param region_name: Name of the AWS region to be associated with the client
            If set to None, loads from botocore session.
        :param aws_access_key_id: Access key to use for the client.
            If set to None, loads from botocore session.
        :param aws_secret_access_key: Secret key to use for the client.
            If set to None, loads from botocore session.
        :param aws_session_token: Session token to use for the client.
            Not being used if not set.
        :param endpoint_url: Full endpoint URL to be used by the client.
            Defaults to ``AWS_ENDPOINT_URL``, or the regular AWS endpoint if that is not set.
        :return: Service Region Client Creator
        """
        params = {
            "region_name": region_name,
            "aws_access_key_id": aws_access_key_id,
            "aws_secret_access_key": aws_secret_access_key,
            "aws_session_token": aws_session_token,
            "endpoint_url": endpoint_url,
        }
        return ServiceLevelClientFactory(factory=self, client_creation_params=params)

    def get_client(
        self,
        service_name: str,
        region_name: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        aws_session_token: Optional[str] = None,
        endpoint_url: Optional[str] = None,
    ) -> BaseClient:
        """
        Returns a boto3 client with the given configuration. This is a cached call, so modifications to the used
        client will affect others. Please use another instance of the factory, should you want to modify clients.

        :param service_name: Service to build the client for, eg. `iot`
        :param region_name: Name of the AWS region to be associated with the client
        :param aws_access_key_id: Access key to use for the client.
        :param aws_secret_access_key: Secret key to use for the client.
        :param aws_session_token: Session token to use for the client.
        :param endpoint_url: Full endpoint URL to be used by the client.
        :return: Boto3 client.
        """
        region_name = region_name or self._get_region()
        endpoint_url = endpoint_url or tfaws_config.AWS_ENDPOINT_URL
        cache_key = (
            service_name,
            region_name,
            endpoint_url,
            aws_access_key_id,
            aws_secret_access_key,
            aws_session_token,
        )
        # client creation is not generally thread safe
        with self._create_client_lock:
            client = self._clients.get(cache_key)
            if client is None:
                LOG.debug("Creating %s client for region %s", service_name, region_name)
                client = self._create_client(
                    service_name=service_name,
                    region_name=region_name,
                    endpoint_url=endpoint_url,
                    aws_access_key_id=aws_access_key_id,
                    aws_secret_access_key=aws_secret_access_key,
                    aws_session_token=aws_session_token,
                )
                self._clients[cache_key] = client
        return client

    def _create_client(
        self,
        service_name: str,
        region_name: str,
        endpoint_url: Optional[str],
        aws_access_key_id: Optional[str],
        aws_secret_access_key: Optional[str],
        aws_session_token: Optional[str],
    ) -> BaseClient:
        default_config = (
            Config(retries={"max_attempts": 0}) if tfaws_config.DISABLE_BOTO_RETRIES else Config()
        )
        return self._session.client(
            service_name=service_name,
            region_name=region_name,
            use_ssl=self._use_ssl,
            verify=self._verify,
            endpoint_url=endpoint_url,
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            aws_session_token=aws_session_token,
            config=self._config.merge(default_config),
        )

    def _get_region(self) -> str:
        """
        Return the AWS region name from following sources, in order of availability.
        - Boto session
        - DEFAULT_REGION config
        """
        return self._session.region_name or tfaws_config.DEFAULT_REGION


connect_to = ClientFactory()
