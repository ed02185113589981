from typing import Optional


class ResourceProviderError(Exception):
    """
    Base class of all errors raised by resource providers.

    :param message: human readable description of the problem
    :param operation: the reconciler operation that failed (create, read, update, delete)
    :param resource_type: the type name of the resource, e.g. ``aws_iot_thing``
    :param identifier: the resource identifier, if one is known at the time of the failure
    """

    error_code: str = "InternalFailure"

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        resource_type: Optional[str] = None,
        identifier: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.resource_type = resource_type
        self.identifier = identifier

    def __str__(self):
        context = [
            part
            for part in (self.operation, self.resource_type, self.identifier and f"'{self.identifier}'")
            if part
        ]
        if not context:
            return self.message
        return f"{' '.join(context)}: {self.message}"


class MalformedIdentifier(ResourceProviderError):
    """The identifier string does not decode into the key attributes of the resource. Never retried."""

    error_code = "InvalidRequest"


class InvalidDesiredState(ResourceProviderError):
    """The desired state does not validate against the schema of the resource."""

    error_code = "InvalidRequest"


class RequiresReplacement(ResourceProviderError):
    """An attribute that can only be set at creation time was changed during an update."""

    error_code = "NotUpdatable"

    def __init__(self, message: str, *, attributes: list[str], **kwargs):
        super().__init__(message, **kwargs)
        self.attributes = attributes


class RemoteRejected(ResourceProviderError):
    """The vendor API returned an error. ``vendor_error_code`` holds the code the vendor reported."""

    error_code = "ServiceInternalError"

    def __init__(self, message: str, *, vendor_error_code: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.vendor_error_code = vendor_error_code


class RemoteNotFound(RemoteRejected):
    """
    The vendor reported that the remote resource does not exist. Read and delete treat this as the resource being
    absent, update surfaces it as a failure.
    """

    error_code = "NotFound"


class OperationCancelled(ResourceProviderError):
    """The caller cancelled the operation, or its deadline passed, before it could be completed."""

    error_code = "Cancelled"
