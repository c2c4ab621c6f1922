# snippetbox/web/handlers.py
"""
Business handlers. Each takes the request and its context and returns a
response; cross-cutting concerns are already handled by the chain around it.
"""
import logging
from http import HTTPStatus
from typing import Mapping

from jinja2 import Template
from starlette.requests import Request
from starlette.responses import PlainTextResponse, RedirectResponse, Response

from snippetbox.core.exceptions import (
    DuplicateEmailError,
    FormDecodeError,
    InvalidCredentialsError,
    NoRecordError,
)
from snippetbox.core.security.auth import login, logout
from snippetbox.core.validator import (
    EMAIL_RX,
    Validator,
    matches,
    max_chars,
    min_chars,
    not_blank,
    permitted_value,
)
from snippetbox.models.forms import SnippetCreateForm, UserLoginForm, UserSignupForm
from snippetbox.models.request_context import RequestContext
from snippetbox.models.snippets import SnippetModel
from snippetbox.models.users import UserModel
from snippetbox.web.helpers import (
    FLASH_KEY,
    client_error,
    decode_post_form,
    new_template_data,
    not_found,
    render,
)

logger = logging.getLogger(__name__)

BLANK = "This field cannot be blank"


def redirect(url: str) -> Response:
    return RedirectResponse(url, status_code=HTTPStatus.SEE_OTHER)


async def ping(request: Request, ctx: RequestContext) -> Response:
    return PlainTextResponse("OK")


class Handlers:
    """Page handlers bound to their models and the template cache"""

    def __init__(
        self,
        snippets: SnippetModel,
        users: UserModel,
        templates: Mapping[str, Template],
    ):
        self.snippets = snippets
        self.users = users
        self.templates = templates

    async def home(self, request: Request, ctx: RequestContext) -> Response:
        data = new_template_data(ctx)
        data.snippets = await self.snippets.latest()
        return render(self.templates, HTTPStatus.OK, "home.html", data)

    async def snippet_view(self, request: Request, ctx: RequestContext) -> Response:
        try:
            snippet_id = int(request.path_params["id"])
        except ValueError:
            return not_found()
        if snippet_id < 1:
            return not_found()

        try:
            snippet = await self.snippets.get(snippet_id)
        except NoRecordError:
            return not_found()

        data = new_template_data(ctx)
        data.snippet = snippet
        return render(self.templates, HTTPStatus.OK, "view.html", data)

    async def snippet_create(self, request: Request, ctx: RequestContext) -> Response:
        data = new_template_data(ctx)
        data.form = SnippetCreateForm()
        return render(self.templates, HTTPStatus.OK, "create.html", data)

    async def snippet_create_post(self, request: Request, ctx: RequestContext) -> Response:
        try:
            form = await decode_post_form(request, SnippetCreateForm)
        except FormDecodeError:
            return client_error(HTTPStatus.BAD_REQUEST)

        v = Validator()
        v.check_field(not_blank(form.title), "title", BLANK)
        v.check_field(max_chars(form.title, 100), "title",
                      "This field cannot be more than 100 characters long")
        v.check_field(not_blank(form.content), "content", BLANK)
        v.check_field(permitted_value(form.expires, 1, 7, 365), "expires",
                      "This field must equal 1, 7 or 365")

        if not v.valid():
            data = new_template_data(ctx)
            data.form = form
            data.validator = v
            return render(self.templates, HTTPStatus.UNPROCESSABLE_ENTITY, "create.html", data)

        snippet_id = await self.snippets.insert(form.title, form.content, form.expires)

        ctx.session.put(FLASH_KEY, "Snippet successfully created!")
        return redirect(f"/snippet/view/{snippet_id}")

    async def user_signup(self, request: Request, ctx: RequestContext) -> Response:
        data = new_template_data(ctx)
        data.form = UserSignupForm()
        return render(self.templates, HTTPStatus.OK, "signup.html", data)

    async def user_signup_post(self, request: Request, ctx: RequestContext) -> Response:
        try:
            form = await decode_post_form(request, UserSignupForm)
        except FormDecodeError:
            return client_error(HTTPStatus.BAD_REQUEST)

        v = Validator()
        v.check_field(not_blank(form.name), "name", BLANK)
        v.check_field(not_blank(form.email), "email", BLANK)
        v.check_field(matches(form.email, EMAIL_RX), "email",
                      "This field must be a valid email address")
        v.check_field(not_blank(form.password), "password", BLANK)
        v.check_field(min_chars(form.password, 8), "password",
                      "This field must be at least 8 characters long")

        if v.valid():
            try:
                await self.users.insert(form.name, form.email, form.password)
            except DuplicateEmailError:
                v.add_field_error("email", "Email address is already in use")
            else:
                ctx.session.put(FLASH_KEY, "Your signup was successful. Please log in.")
                return redirect("/user/login")

        data = new_template_data(ctx)
        data.form = form.model_copy(update={"password": ""})
        data.validator = v
        return render(self.templates, HTTPStatus.UNPROCESSABLE_ENTITY, "signup.html", data)

    async def user_login(self, request: Request, ctx: RequestContext) -> Response:
        data = new_template_data(ctx)
        data.form = UserLoginForm()
        return render(self.templates, HTTPStatus.OK, "login.html", data)

    async def user_login_post(self, request: Request, ctx: RequestContext) -> Response:
        try:
            form = await decode_post_form(request, UserLoginForm)
        except FormDecodeError:
            return client_error(HTTPStatus.BAD_REQUEST)

        v = Validator()
        v.check_field(not_blank(form.email), "email", BLANK)
        v.check_field(matches(form.email, EMAIL_RX), "email",
                      "This field must be a valid email address")
        v.check_field(not_blank(form.password), "password", BLANK)

        if v.valid():
            try:
                user_id = await self.users.authenticate(form.email, form.password)
            except InvalidCredentialsError:
                v.add_non_field_error("Email or password is incorrect")
            else:
                login(ctx.session, user_id)
                logger.info(f"🔐 User {user_id} logged in")
                return redirect("/snippet/create")

        data = new_template_data(ctx)
        data.form = form.model_copy(update={"password": ""})
        data.validator = v
        return render(self.templates, HTTPStatus.UNPROCESSABLE_ENTITY, "login.html", data)

    async def user_logout_post(self, request: Request, ctx: RequestContext) -> Response:
        logout(ctx.session)
        ctx.session.put(FLASH_KEY, "You've been logged out successfully!")
        return redirect("/")
