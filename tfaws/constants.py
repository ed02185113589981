import os

# name of the environment variable holding the comma separated list of config profiles
ENV_CONFIG_PROFILE = "CONFIG_PROFILE"

# folder holding user level configuration profiles (<profile>.env files)
CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".tfaws")

# strings to indicate truthy/falsy values
TRUE_STRINGS = ("1", "true", "True")
FALSE_STRINGS = ("0", "false", "False")
# strings with valid log levels for TFAWS_LOG
LOG_LEVELS = ("trace", "debug", "info", "warn", "error", "warning")

TFAWS_LOG_TRACE = "trace"
TRACE_LOG_LEVELS = [TFAWS_LOG_TRACE]

# region used when neither the request nor the boto session define one
AWS_REGION_US_EAST_1 = "us-east-1"

# default size of the botocore connection pool per client
MAX_POOL_CONNECTIONS = 150

# vendor error codes signalling that a remote resource does not exist
NOT_FOUND_ERROR_CODES = (
    "ResourceNotFoundException",
    "ResourceNotFound",
    "NotFoundException",
    "NotFound",
    "NoSuchEntity",
)
