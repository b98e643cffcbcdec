"""
The wire layer: JSON:API documents as plain representation objects, with a parser and a renderer.
"""
from .deserializer import ReprDeserializer  # noqa
from .exceptions import DeserializationError  # noqa
from .renderer import ReprRenderer  # noqa
