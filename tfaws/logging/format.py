"""Tools for formatting tfaws logs."""
import logging
from functools import lru_cache
from typing import Any, Dict

MAX_THREAD_NAME_LEN = 12
MAX_NAME_LEN = 26

LOG_FORMAT = f"%(asctime)s.%(msecs)03d %(tf_level)5s --- [%(tf_thread){MAX_THREAD_NAME_LEN}s] %(tf_name)-{MAX_NAME_LEN}s : %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

CUSTOM_LEVEL_NAMES = {
    50: "FATAL",
    40: "ERROR",
    30: "WARN",
    20: "INFO",
    10: "DEBUG",
}


class DefaultFormatter(logging.Formatter):
    """Formats records with ``LOG_FORMAT``, expects the attributes set by ``AddFormattedAttributes``."""

    def __init__(self):
        super().__init__(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


class AddFormattedAttributes(logging.Filter):
    """
    Sets ``tf_level`` (level name of at most 5 characters), ``tf_name`` (logger name compressed to
    ``MAX_NAME_LEN``) and ``tf_thread`` (the last ``MAX_THREAD_NAME_LEN`` characters of the thread name) on every
    record.
    """

    def filter(self, record):
        record.tf_level = CUSTOM_LEVEL_NAMES.get(record.levelno, record.levelname)
        record.tf_name = _compressed_logger_name(record.name)
        record.tf_thread = record.threadName[-MAX_THREAD_NAME_LEN:]
        return True


@lru_cache(maxsize=256)
def _compressed_logger_name(name: str) -> str:
    return compress_logger_name(name, MAX_NAME_LEN)


def compress_logger_name(name: str, length: int) -> str:
    """
    Creates a short version of a logger name. For example ``my.very.long.logger.name`` with length=17 turns into
    ``m.v.l.logger.name``.

    :param name: the logger name
    :param length: the max length of the logger name
    :return: the compressed name
    """
    if len(name) <= length:
        return name

    parts = name.split(".")
    parts.reverse()

    new_parts = []

    # we start by assuming that all parts are collapsed
    # x.x.x requires 5 = 2n - 1 characters
    cur_length = (len(parts) * 2) - 1

    for i in range(len(parts)):
        # try to expand the current part and calculate the resulting length
        part = parts[i]
        next_len = cur_length + (len(part) - 1)

        if next_len > length:
            # if the resulting length would exceed the limit, add only the first letter of the parts of all remaining
            # parts
            new_parts += [p[0] for p in parts[i:]]

            # but if this is the first item, that means we would display nothing, so at least display as much of the
            # max length as possible
            if i == 0:
                remaining = length - cur_length
                if remaining > 0:
                    new_parts[0] = part[: (remaining + 1)]

            break

        # expanding the current part, i.e., instead of using just the one character, we add the entire part
        new_parts.append(part)
        cur_length = next_len

    new_parts.reverse()
    return ".".join(new_parts)


class RemoteCallLoggingFormatter(logging.Formatter):
    """
    Formatter for the trace logs of vendor API calls. Records are expected to carry the ``request`` and
    ``response`` payloads as extra attributes. Values of sensitive keys are masked, long strings truncated.
    """

    remote_call_log_format = LOG_FORMAT + "; request(%(request)s); response(%(response)s)"
    string_length_display_threshold = 512
    sensitive_keys = ("SecretAccessKey", "SessionToken", "password", "Password")

    def __init__(self):
        super().__init__(fmt=self.remote_call_log_format, datefmt=LOG_DATE_FORMAT)

    def _copy_payload(self, payload: Any) -> Any:
        if isinstance(payload, dict):
            result = {}
            for key, value in payload.items():
                if key in self.sensitive_keys:
                    result[key] = "******"
                else:
                    result[key] = self._copy_payload(value)
            return result
        if isinstance(payload, list):
            return [self._copy_payload(item) for item in payload]
        if isinstance(payload, str) and len(payload) > self.string_length_display_threshold:
            return f"{payload[: self.string_length_display_threshold]}...({len(payload)} chars)"
        return payload

    def format(self, record: logging.LogRecord) -> str:
        record.request = self._copy_payload(getattr(record, "request", None))
        record.response = self._copy_payload(_strip_response_metadata(getattr(record, "response", None)))
        return super().format(record=record)


def _strip_response_metadata(response: Any) -> Any:
    if isinstance(response, Dict):
        return {k: v for k, v in response.items() if k != "ResponseMetadata"}
    return response
