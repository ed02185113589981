import logging
import os
import time
from typing import List, Optional, Union

from tfaws.constants import (
    AWS_REGION_US_EAST_1,
    CONFIG_DIR,
    ENV_CONFIG_PROFILE,
    FALSE_STRINGS,
    LOG_LEVELS,
    MAX_POOL_CONNECTIONS,
    TRACE_LOG_LEVELS,
    TRUE_STRINGS,
)

# keep track of start time, for performance debugging
load_start_time = time.time()


def eval_log_type(env_var_name: str) -> Union[str, bool]:
    """Get the log type from environment variable"""
    log_type = os.environ.get(env_var_name, "").lower().strip()
    return log_type if log_type in LOG_LEVELS else False


def parse_boolean_env(env_var_name: str) -> Optional[bool]:
    """Parse the value of the given env variable and return True/False, or None if it is not a boolean value."""
    value = os.environ.get(env_var_name, "").lower().strip()
    if value in TRUE_STRINGS:
        return True
    if value in FALSE_STRINGS:
        return False
    return None


def is_env_true(env_var_name: str) -> bool:
    """Whether the given environment variable has a truthy value."""
    return os.environ.get(env_var_name, "").lower().strip() in TRUE_STRINGS


def is_env_not_false(env_var_name: str) -> bool:
    """Whether the given environment variable is empty or has a truthy value."""
    return os.environ.get(env_var_name, "").lower().strip() not in FALSE_STRINGS


def load_environment(profiles: str = None, env=os.environ) -> List[str]:
    """Loads the environment variables from ~/.tfaws/{profile}.env, for each profile listed in the profiles.
    :param env: environment to load profile to. Defaults to `os.environ`
    :param profiles: a comma separated list of profiles to load (defaults to "default")
    :returns str: the list of the actually loaded profiles (might be the fallback)
    """
    if not profiles:
        profiles = "default"

    profiles = [profile.strip() for profile in profiles.split(",")]
    environment = {}
    import dotenv

    for profile in profiles:
        path = os.path.join(CONFIG_DIR, f"{profile}.env")
        if not os.path.exists(path):
            continue
        environment.update(dotenv.dotenv_values(path))

    for k, v in environment.items():
        # we do not want to override the environment
        if k not in env and v is not None:
            env[k] = v

    return profiles


# the configuration profiles to load
CONFIG_PROFILE = os.environ.get(ENV_CONFIG_PROFILE, "").strip()

# load the profiles before any other config values are evaluated
LOADED_PROFILES = load_environment(CONFIG_PROFILE)

# whether debugging is enabled
DEBUG = is_env_true("DEBUG")

# log level of the tfaws loggers (overrides DEBUG)
TFAWS_LOG = eval_log_type("TFAWS_LOG")

# whether vendor errors should be logged with their full stack trace
VERBOSE_ERRORS = is_env_true("VERBOSE_ERRORS")

# endpoint to send all AWS API calls to (e.g., a local emulator), empty to use the AWS defaults
AWS_ENDPOINT_URL = os.environ.get("AWS_ENDPOINT_URL", "").strip() or None

# region used for clients when the request does not specify one
DEFAULT_REGION = (
    os.environ.get("AWS_DEFAULT_REGION", "").strip()
    or os.environ.get("AWS_REGION", "").strip()
    or AWS_REGION_US_EAST_1
)

# disable the retries botocore performs on its own
DISABLE_BOTO_RETRIES = is_env_true("DISABLE_BOTO_RETRIES")

# size of the connection pool of each boto client
MAX_POOL_CONNECTIONS = int(os.environ.get("MAX_POOL_CONNECTIONS") or MAX_POOL_CONNECTIONS)


def is_trace_logging_enabled():
    if TFAWS_LOG:
        log_level = str(TFAWS_LOG).upper()
        return log_level.lower() in TRACE_LOG_LEVELS
    return False


# set log levels immediately, but will be overwritten later by setup_logging
if DEBUG:
    logging.getLogger("").setLevel(logging.DEBUG)
    logging.getLogger("tfaws").setLevel(logging.DEBUG)

LOG = logging.getLogger(__name__)
if is_trace_logging_enabled():
    load_end_time = time.time()
    LOG.debug(
        "Initializing the configuration took %s ms", int((load_end_time - load_start_time) * 1000)
    )
