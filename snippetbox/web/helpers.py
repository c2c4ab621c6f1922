# snippetbox/web/helpers.py
"""
Request outcome helpers.

The boundary between errors inside the app and what the client sees:
client errors get their status phrase, internal errors get a bare 500 while
the log gets the message and stack trace.
"""
import logging
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Mapping, Type, TypeVar

from jinja2 import Template, TemplateError
from pydantic import BaseModel, ValidationError
from starlette.formparsers import MultiPartException
from starlette.requests import Request
from starlette.responses import HTMLResponse, PlainTextResponse, Response

from snippetbox.core.exceptions import FormDecodeError, InvalidDecoderError, TemplateNotFoundError
from snippetbox.models.request_context import RequestContext
from snippetbox.web.templates import TemplateData

logger = logging.getLogger(__name__)

FLASH_KEY = "flash"

F = TypeVar('F', bound=BaseModel)


def server_error(error: BaseException) -> Response:
    """Log the error with its traceback and answer with a generic 500"""
    logger.error(f"❌ {type(error).__name__}: {error}", exc_info=error)
    return client_error(HTTPStatus.INTERNAL_SERVER_ERROR)


def client_error(status: int) -> Response:
    """Answer with the status and its standard phrase, nothing else"""
    status = HTTPStatus(status)
    return PlainTextResponse(status.phrase, status_code=status.value)


def not_found() -> Response:
    return client_error(HTTPStatus.NOT_FOUND)


def new_template_data(ctx: RequestContext) -> TemplateData:
    """Template data every page gets. Reading the flash message consumes it."""
    flash = ctx.session.pop_string(FLASH_KEY) if ctx.session is not None else ""
    return TemplateData(
        current_year=datetime.now(timezone.utc).year,
        flash=flash,
        is_authenticated=ctx.is_authenticated,
        csrf_token=ctx.csrf_token,
    )


def render(
    templates: Mapping[str, Template],
    status: int,
    page: str,
    data: TemplateData
) -> Response:
    """
    Render a cached page.

    The page is rendered in full before a status is chosen, so a template
    failure still produces a clean 500 instead of a half-written page.
    """
    template = templates.get(page)
    if template is None:
        return server_error(TemplateNotFoundError(page))

    try:
        body = template.render(vars(data))
    except TemplateError as e:
        return server_error(e)

    return HTMLResponse(body, status_code=status)


async def decode_post_form(request: Request, form_cls: Type[F]) -> F:
    """
    Parse the request body and bind it to a pydantic form model.

    Raises:
        InvalidDecoderError: form_cls is not a pydantic model (programming defect)
        FormDecodeError: the body cannot be parsed or bound (client error)
    """
    if not (isinstance(form_cls, type) and issubclass(form_cls, BaseModel)):
        raise InvalidDecoderError(form_cls)

    try:
        form = await request.form()
    except MultiPartException as e:
        raise FormDecodeError(f"could not parse form body: {e}") from e

    try:
        return form_cls.model_validate(dict(form))
    except ValidationError as e:
        raise FormDecodeError(
            "form fields do not match",
            errors=[{"loc": err["loc"], "msg": err["msg"]} for err in e.errors()]
        ) from e
