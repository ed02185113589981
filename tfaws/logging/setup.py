import logging
import sys
import warnings

from tfaws import config, constants

from .format import AddFormattedAttributes, DefaultFormatter, RemoteCallLoggingFormatter

# name of the logger that receives the request/response payloads of every vendor API call
REMOTE_CALL_LOGGER = "tfaws.remote"

# The log levels for modules are evaluated incrementally for logging granularity,
# from highest (DEBUG) to lowest (TRACE). Hence, each module below should have
# higher level which serves as the default.

default_log_levels = {
    "boto3": logging.INFO,
    "botocore": logging.ERROR,
    "s3transfer": logging.INFO,
    "urllib3": logging.WARNING,
    REMOTE_CALL_LOGGER: logging.INFO,
}

trace_log_levels = {
    REMOTE_CALL_LOGGER: logging.DEBUG,
}


def get_log_level_from_config():
    # overriding the log level if TFAWS_LOG has been set
    if config.TFAWS_LOG:
        log_level = str(config.TFAWS_LOG).upper()
        if log_level.lower() in constants.TRACE_LOG_LEVELS:
            log_level = "DEBUG"
        log_level = logging._nameToLevel[log_level]
        return log_level

    return logging.DEBUG if config.DEBUG else logging.INFO


def setup_logging_from_config():
    log_level = get_log_level_from_config()
    setup_logging(log_level)

    if config.is_trace_logging_enabled():
        for name, level in trace_log_levels.items():
            logging.getLogger(name).setLevel(level)
        setup_remote_call_logger(log_level)


def create_default_handler(log_level: int):
    log_handler = logging.StreamHandler(stream=sys.stderr)
    log_handler.setLevel(log_level)
    log_handler.setFormatter(DefaultFormatter())
    log_handler.addFilter(AddFormattedAttributes())
    return log_handler


def setup_logging(log_level=logging.INFO) -> None:
    """
    Configures the python logging environment for tfaws.

    :param log_level: the optional log level.
    """
    # set create a default handler for the root logger (basically logging.basicConfig but explicit)
    log_handler = create_default_handler(log_level)

    # replace any existing handlers
    logging.basicConfig(level=log_level, handlers=[log_handler], force=True)

    # disable some logs and warnings
    warnings.filterwarnings("ignore")
    logging.captureWarnings(True)

    # set log levels of loggers
    logging.root.setLevel(log_level)
    logging.getLogger("tfaws").setLevel(log_level)
    for logger, level in default_log_levels.items():
        logging.getLogger(logger).setLevel(level)


def setup_remote_call_logger(log_level: int) -> logging.Logger:
    """
    Gives the remote call logger its own handler, rendering the request and response payloads of every vendor call.

    :param log_level: the level of the handler
    :return: the configured logger
    """
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(RemoteCallLoggingFormatter())
    handler.addFilter(AddFormattedAttributes())

    logger = logging.getLogger(REMOTE_CALL_LOGGER)
    logger.handlers = [handler]
    logger.propagate = False
    return logger
