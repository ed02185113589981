"""
Composite resource identifiers.

An identifier is the single string the host persists for a resource once it has been created. It is built from the
key attributes of the resource, joined by a delimiter in a fixed order. The format of every resource type is part of
the persisted state contract and must never change.
"""
from typing import Any, Mapping, Optional, Sequence

from tfaws.resources.exceptions import MalformedIdentifier


class IdentifierCodec:
    """
    Encodes the ordered key attributes of a resource into an identifier string, and decodes it back.

    At most one key, the ``open_key``, may contain the delimiter itself. Decoding then assigns the segments of the
    keys in front of it from the left and the segments of the keys behind it from the right, and whatever remains in
    the middle is rejoined into the open key. For example, with the keys ``(identity_pool_id,
    identity_provider_name)`` and ``identity_pool_id`` as open key, ``us-east-1:abc:MyProvider`` decodes into
    ``("us-east-1:abc", "MyProvider")``.

    :param key_attributes: names of the key attributes, in the order they appear in the identifier
    :param delimiter: the string separating the keys
    :param open_key: name of the key which may contain the delimiter
    :param min_segments: minimal number of delimiter separated segments of a valid identifier, defaults to the number
        of keys
    """

    def __init__(
        self,
        *key_attributes: str,
        delimiter: str = ":",
        open_key: Optional[str] = None,
        min_segments: Optional[int] = None,
    ):
        if not key_attributes:
            raise ValueError("An identifier needs at least one key attribute")
        if open_key is not None and open_key not in key_attributes:
            raise ValueError(f"Open key {open_key} is not one of the key attributes")
        self.key_attributes = tuple(key_attributes)
        self.delimiter = delimiter
        self.open_key = open_key
        self.min_segments = min_segments or len(key_attributes)

    @property
    def format(self) -> str:
        """The documented format of the identifier, e.g. ``<identity_pool_id>:<identity_provider_name>``."""
        return self.delimiter.join(f"<{key}>" for key in self.key_attributes)

    def encode(self, keys: Sequence[str]) -> str:
        """
        Joins the given keys into an identifier.

        :param keys: the key values, in the order of ``key_attributes``
        :return: the identifier
        :raises ValueError: if the keys cannot be encoded into an identifier that decodes back into them
        """
        if len(keys) != len(self.key_attributes):
            raise ValueError(
                f"Expected {len(self.key_attributes)} keys ({', '.join(self.key_attributes)}), got {len(keys)}"
            )
        for name, value in zip(self.key_attributes, keys):
            if not isinstance(value, str) or not value:
                raise ValueError(f"Key {name} must be a non-empty string, got {value!r}")
            if len(self.key_attributes) > 1 and name != self.open_key and self.delimiter in value:
                raise ValueError(f"Key {name} must not contain '{self.delimiter}': {value}")
        identifier = self.delimiter.join(keys)
        if len(self.key_attributes) > 1 and len(identifier.split(self.delimiter)) < self.min_segments:
            raise ValueError(
                f"Identifier {identifier} has fewer than {self.min_segments} '{self.delimiter}' separated segments"
            )
        return identifier

    def decode(self, identifier: str) -> tuple[str, ...]:
        """
        Splits an identifier produced by ``encode`` back into its keys.

        :param identifier: the identifier
        :return: the key values, in the order of ``key_attributes``
        :raises MalformedIdentifier: if the identifier does not have the expected format
        """
        if not identifier:
            raise MalformedIdentifier(f"expected ID in format {self.format}, received an empty ID")

        if len(self.key_attributes) == 1:
            return (identifier,)

        segments = identifier.split(self.delimiter)
        if len(segments) < self.min_segments or (
            self.open_key is None and len(segments) != len(self.key_attributes)
        ):
            raise MalformedIdentifier(
                f"expected ID in format {self.format}, received: {identifier}", identifier=identifier
            )

        if self.open_key is None:
            keys = segments
        else:
            open_index = self.key_attributes.index(self.open_key)
            trailing = len(self.key_attributes) - open_index - 1
            end = len(segments) - trailing
            keys = [
                *segments[:open_index],
                self.delimiter.join(segments[open_index:end]),
                *segments[end:],
            ]

        if not all(keys):
            raise MalformedIdentifier(
                f"expected ID in format {self.format}, received: {identifier}", identifier=identifier
            )
        return tuple(keys)

    def keys_from(self, model: Mapping[str, Any]) -> tuple[str, ...]:
        """Extracts the ordered key values from a resource model."""
        return tuple(model.get(key) for key in self.key_attributes)

    def to_model(self, keys: Sequence[str]) -> dict[str, str]:
        """Turns decoded key values back into key attributes."""
        return dict(zip(self.key_attributes, keys))
