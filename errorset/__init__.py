"""Flat, serializable error collector for application and API code."""

from errorset.core.errors import ErrorSet
from errorset.core.errors import bad_request
from errorset.core.errors import format_message
from errorset.core.errors import message
from errorset.core.errors import meta_with_code
from errorset.core.errors import new
from errorset.core.xml_codec import XMLDecodingError
from errorset.core.xml_codec import XMLEncodingError
from errorset.schemas.error import ErrorPayload

__all__ = [
    "ErrorPayload",
    "ErrorSet",
    "XMLDecodingError",
    "XMLEncodingError",
    "bad_request",
    "format_message",
    "message",
    "meta_with_code",
    "new",
]
