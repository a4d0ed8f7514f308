"""FastAPI exception handlers rendering error sets as JSON or XML."""

from __future__ import annotations

from http import HTTPStatus
import logging
from typing import Any

from fastapi import FastAPI
from fastapi import Request
from fastapi import status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.responses import Response
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from errorset.core.config import get_settings
from errorset.core.errors import ErrorSet
from errorset.core.errors import bad_request
from errorset.core.errors import meta_with_code
from errorset.core.xml_codec import XMLEncodingError
from errorset.core.xml_codec import is_valid_element_name

logger = logging.getLogger(__name__)

XML_MEDIA_TYPES = frozenset({"application/xml", "text/xml"})
JSON_MEDIA_TYPES = frozenset({"application/json", "*/*", "application/*"})
XML_MEDIA_TYPE = "application/xml"

_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}
_PAYLOAD_KEYS = {"meta", "fields"}


def wants_xml(accept: str | None) -> bool:
    """Return True when the first recognised media type in ``accept`` is XML."""
    if not accept:
        return False
    for part in accept.split(","):
        media_type = part.split(";", 1)[0].strip().lower()
        if media_type in XML_MEDIA_TYPES:
            return True
        if media_type in JSON_MEDIA_TYPES:
            return False
    return False


def build_error_response(
    errs: ErrorSet,
    *,
    as_xml: bool = False,
    status_code: int | None = None,
) -> Response:
    """Render ``errs`` as a response; status falls back to the set's code, then the default."""
    resolved_status = status_code or errs.code or get_settings().default_status_code
    if as_xml:
        return Response(content=errs.to_xml(), status_code=resolved_status, media_type=XML_MEDIA_TYPE)
    return JSONResponse(status_code=resolved_status, content=errs.to_dict())


def _respond(request: Request, errs: ErrorSet) -> Response:
    as_xml = wants_xml(request.headers.get("accept"))
    try:
        return build_error_response(errs, as_xml=as_xml)
    except XMLEncodingError:
        logger.warning("Falling back to JSON for error set that cannot be rendered as XML: %r", errs)
        return build_error_response(errs)


def _format_location(location: tuple[Any, ...] | list[Any] | Any) -> str:
    if not isinstance(location, (tuple, list)):
        return str(location)

    filtered = [str(part) for part in location if part not in _LOCATION_PREFIXES]
    if filtered:
        return ".".join(filtered)

    if not location:
        return "request"

    return str(location[0])


def validation_error_set(exc: RequestValidationError) -> ErrorSet:
    """Collect request validation issues as field errors of a 400 error set.

    Locations that cannot be rendered as an XML element name, such as list
    indices, are reported as meta messages prefixed with the location.
    """
    errs = bad_request()
    for issue in exc.errors():
        field = _format_location(issue.get("loc", ()))
        msg = str(issue.get("msg", "Invalid value"))
        if is_valid_element_name(field):
            errs.set_field(field, "%s", msg)
        else:
            errs.add_meta("%s: %s", field, msg)
    return errs


def http_error_set(exc: StarletteHTTPException) -> ErrorSet:
    """Convert an HTTP exception to an error set carrying its status code."""
    detail = exc.detail
    if isinstance(detail, dict) and _PAYLOAD_KEYS & detail.keys():
        try:
            errs = ErrorSet.from_dict(detail)
        except ValidationError:
            logger.warning("Ignoring HTTP exception detail that is not an error payload: %r", detail)
        else:
            errs.code = exc.status_code
            return errs

    errs = ErrorSet(code=exc.status_code)
    if isinstance(detail, str) and detail:
        errs.add_meta("%s", detail)
    else:
        errs.add_meta(_status_phrase(exc.status_code))
    return errs


def _status_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Request failed"


async def error_set_handler(request: Request, exc: ErrorSet) -> Response:
    """Return a raised error set in the negotiated format."""
    return _respond(request, exc)


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> Response:
    """Normalize FastAPI validation errors to a 400 error set."""
    return _respond(request, validation_error_set(exc))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Normalize HTTP exceptions to an error set."""
    return _respond(request, http_error_set(exc))


async def unhandled_exception_handler(request: Request, exc: Exception) -> Response:
    """Avoid leaking internal exceptions while keeping response shape stable."""
    logger.exception("Unhandled exception while serving %s %s", request.method, request.url.path, exc_info=exc)
    return _respond(request, meta_with_code(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"))


def register_error_handlers(app: FastAPI) -> None:
    """Attach error set handlers to a FastAPI app instance."""
    app.add_exception_handler(ErrorSet, error_set_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
    logger.info("Registered error set handlers with settings=%s", get_settings().as_log_dict())
