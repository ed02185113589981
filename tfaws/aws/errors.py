"""
Classification of vendor errors.

botocore errors are mapped onto the resource provider error taxonomy here, and only here. Providers never inspect
error codes themselves.
"""
import logging
from contextlib import contextmanager
from typing import Iterable, Optional

from botocore.exceptions import BotoCoreError, ClientError

from tfaws import config
from tfaws.constants import NOT_FOUND_ERROR_CODES
from tfaws.resources.exceptions import RemoteNotFound, RemoteRejected, ResourceProviderError

LOG = logging.getLogger(__name__)


def get_error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def get_error_message(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Message") or str(error)


def is_not_found_error(error: ClientError, not_found_codes: Iterable[str] = ()) -> bool:
    """
    Whether the given client error signals that the addressed resource does not exist.

    :param error: the error raised by the boto client
    :param not_found_codes: additional, service specific error codes to treat as "not found"
    :return: True if the error is a not found error
    """
    code = get_error_code(error)
    if code in NOT_FOUND_ERROR_CODES or code in not_found_codes:
        return True
    status_code = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return status_code == 404


def classify_client_error(
    error: ClientError,
    *,
    operation: Optional[str] = None,
    resource_type: Optional[str] = None,
    identifier: Optional[str] = None,
    not_found_codes: Iterable[str] = (),
) -> RemoteRejected:
    """
    Converts a boto client error into ``RemoteNotFound`` or ``RemoteRejected``, keeping the vendor error code and
    message.
    """
    code = get_error_code(error)
    message = f"{code}: {get_error_message(error)}" if code else get_error_message(error)
    error_class = RemoteNotFound if is_not_found_error(error, not_found_codes) else RemoteRejected
    return error_class(
        message,
        vendor_error_code=code or None,
        operation=operation,
        resource_type=resource_type,
        identifier=identifier,
    )


@contextmanager
def remote_call(
    *,
    operation: str,
    resource_type: str,
    identifier: Optional[str] = None,
    not_found_codes: Iterable[str] = (),
):
    """
    Context manager wrapping the vendor calls of one reconciler operation. Any botocore error raised inside is
    re-raised as a resource provider error carrying the operation name and the resource identifier.

    :param operation: name of the reconciler operation (create, read, update, delete)
    :param resource_type: the resource type name
    :param identifier: the resource identifier, if already known
    :param not_found_codes: service specific error codes to treat as "not found"
    """
    try:
        yield
    except ResourceProviderError as e:
        # raised by the provider hooks themselves, e.g. when a list call does not contain the resource
        e.operation = e.operation or operation
        e.resource_type = e.resource_type or resource_type
        e.identifier = e.identifier or identifier
        raise
    except ClientError as e:
        classified = classify_client_error(
            e,
            operation=operation,
            resource_type=resource_type,
            identifier=identifier,
            not_found_codes=not_found_codes,
        )
        if not isinstance(classified, RemoteNotFound):
            log_method = LOG.exception if config.VERBOSE_ERRORS else LOG.debug
            log_method("Vendor call failed for %s %s: %s", resource_type, identifier, classified)
        raise classified from e
    except BotoCoreError as e:
        log_method = LOG.exception if config.VERBOSE_ERRORS else LOG.debug
        log_method("Vendor call failed for %s %s: %s", resource_type, identifier, e)
        raise RemoteRejected(
            str(e), operation=operation, resource_type=resource_type, identifier=identifier
        ) from e
