# tests/web/test_helpers.py
"""
Tests for page rendering, form decoding and the template date filter.
"""

import logging
from datetime import datetime, timedelta, timezone

import pytest
from jinja2 import Environment

from snippetbox.core.exceptions import FormDecodeError, InvalidDecoderError
from snippetbox.models.forms import SnippetCreateForm
from snippetbox.web.helpers import (
    FLASH_KEY,
    client_error,
    decode_post_form,
    new_template_data,
    render,
    server_error,
)
from snippetbox.web.templates import TemplateData, human_date, new_template_cache
from tests.conftest import make_context, make_request

FORM = {"content-type": "application/x-www-form-urlencoded"}


@pytest.fixture(scope="module")
def templates():
    return new_template_cache()


class TestHumanDate:
    """The human_date template filter"""

    def test_utc(self):
        assert human_date(datetime(2022, 3, 17, 10, 15, tzinfo=timezone.utc)) == "17 Mar 2022 at 10:15"

    def test_none(self):
        assert human_date(None) == ""

    def test_converted_to_utc(self):
        cet = timezone(timedelta(hours=1))
        assert human_date(datetime(2022, 3, 17, 10, 15, tzinfo=cet)) == "17 Mar 2022 at 09:15"


class TestTemplateCache:

    def test_every_page_cached(self, templates):
        assert set(templates) == {"home.html", "view.html", "create.html", "signup.html", "login.html"}


class TestRender:
    """Rendering and error responses"""

    def test_render_page(self, templates):
        response = render(templates, 200, "home.html", TemplateData(current_year=2024))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert b"There's nothing to see here... yet!" in response.body
        assert b"2024" in response.body

    def test_render_with_status(self, templates):
        assert render(templates, 422, "create.html", TemplateData(form=SnippetCreateForm())).status_code == 422

    def test_missing_template_is_server_error(self, templates, caplog):
        with caplog.at_level(logging.ERROR):
            response = render(templates, 200, "missing.html", TemplateData())

        assert response.status_code == 500
        assert response.body == b"Internal Server Error"
        assert "the template missing.html does not exist" in caplog.text

    def test_failing_template_is_server_error(self):
        broken = {"broken.html": Environment().from_string("{{ nothing() }}")}

        response = render(broken, 200, "broken.html", TemplateData())

        assert response.status_code == 500
        assert response.body == b"Internal Server Error"

    def test_client_error_body_is_status_phrase(self):
        response = client_error(405)
        assert response.status_code == 405
        assert response.body == b"Method Not Allowed"

    def test_server_error_hides_detail(self):
        response = server_error(RuntimeError("secret detail"))
        assert b"secret detail" not in response.body


class TestTemplateData:

    def test_flash_consumed(self):
        ctx = make_context({FLASH_KEY: "Saved!"}, csrf_token="tok", is_authenticated=True)

        data = new_template_data(ctx)

        assert data.flash == "Saved!"
        assert data.csrf_token == "tok"
        assert data.is_authenticated is True
        assert data.current_year == datetime.now(timezone.utc).year
        assert new_template_data(ctx).flash == ""


class TestDecodePostForm:
    """Binding request bodies to form models"""

    async def test_binds_fields(self):
        request = make_request("POST", "/snippet/create", FORM, b"title=Hi&content=There&expires=7&csrf_token=x")

        form = await decode_post_form(request, SnippetCreateForm)

        assert form == SnippetCreateForm(title="Hi", content="There", expires=7)

    async def test_missing_fields_use_defaults(self):
        form = await decode_post_form(make_request("POST", "/", FORM, b"title=Hi"), SnippetCreateForm)
        assert form.content == ""
        assert form.expires == 365

    async def test_unbindable_value(self):
        request = make_request("POST", "/", FORM, b"expires=soon")

        with pytest.raises(FormDecodeError) as exc_info:
            await decode_post_form(request, SnippetCreateForm)

        assert exc_info.value.errors[0]["loc"] == ("expires",)

    async def test_bad_multipart_body(self):
        request = make_request("POST", "/", {"content-type": "multipart/form-data"}, b"--x\r\n")

        with pytest.raises(FormDecodeError):
            await decode_post_form(request, SnippetCreateForm)

    async def test_invalid_destination(self):
        with pytest.raises(InvalidDecoderError):
            await decode_post_form(make_request("POST", "/", FORM, b"title=Hi"), dict)
