# tests/web/test_handlers.py
"""
End-to-end tests through the full application: outer pipeline, session,
CSRF, authentication and the page handlers.
"""

from unittest.mock import AsyncMock

from tests.conftest import TEST_PASSWORD, extract_csrf_token, signup_and_login

LENGTH_ERROR = "This field cannot be more than 100 characters long"


def create_snippet(client, **fields):
    page = client.get("/snippet/create")
    data = {"title": "O snail", "content": "Climb Mount Fuji", "expires": "365"}
    data.update(fields)
    data["csrf_token"] = extract_csrf_token(page.text)
    return client.post("/snippet/create", data=data, follow_redirects=False)


class TestPublicPages:
    """Pages anyone can see"""

    def test_ping(self, client):
        response = client.get("/ping")

        assert response.status_code == 200
        assert response.text == "OK"
        # No session layer on /ping
        assert "set-cookie" not in response.headers

    def test_home_empty(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "There's nothing to see here... yet!" in response.text
        assert "Cookie" in response.headers["vary"]

    def test_view_unknown_snippet(self, client):
        for path in ("/snippet/view/99", "/snippet/view/0", "/snippet/view/-1", "/snippet/view/abc"):
            response = client.get(path)
            assert response.status_code == 404, path
            assert response.text == "Not Found"

    def test_method_not_allowed(self, client):
        assert client.delete("/").status_code == 405


class TestCreateSnippet:
    """The protected create form"""

    def test_anonymous_redirected_to_login(self, client):
        response = client.get("/snippet/create", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/user/login"
        assert response.headers["cache-control"] == "no-store"

    def test_authenticated_form_not_cached(self, client):
        signup_and_login(client)

        response = client.get("/snippet/create")

        assert response.status_code == 200
        assert response.headers["cache-control"] == "no-store"
        assert "Publish snippet" in response.text

    def test_too_long_title_rerenders_form(self, client, snippets):
        signup_and_login(client)
        snippets.insert = AsyncMock(side_effect=AssertionError("insert must not be called"))

        response = create_snippet(client, title="x" * 101)

        assert response.status_code == 422
        assert response.text.count("class='error'") == 1
        assert LENGTH_ERROR in response.text
        # The submitted content is kept
        assert "Climb Mount Fuji" in response.text
        snippets.insert.assert_not_called()

    def test_invalid_expiry(self, client):
        signup_and_login(client)

        response = create_snippet(client, title="", expires="30")

        assert response.status_code == 422
        assert "This field cannot be blank" in response.text
        assert "This field must equal 1, 7 or 365" in response.text
        assert "There's nothing to see here" in client.get("/").text

    def test_undecodable_form(self, client):
        signup_and_login(client)

        response = create_snippet(client, expires="soon")

        assert response.status_code == 400
        assert response.text == "Bad Request"

    def test_created_snippet_shown_with_flash(self, client):
        signup_and_login(client)

        response = create_snippet(client)
        assert response.status_code == 303
        assert response.headers["location"] == "/snippet/view/1"

        page = client.get("/snippet/view/1")
        assert page.status_code == 200
        assert "Snippet successfully created!" in page.text
        assert "Climb Mount Fuji" in page.text

        # The flash message is shown once
        assert "Snippet successfully created!" not in client.get("/snippet/view/1").text
        assert "O snail" in client.get("/").text

    def test_missing_csrf_token_rejected(self, client):
        signup_and_login(client)
        client.get("/snippet/create")

        response = client.post("/snippet/create", data={"title": "t", "content": "c", "expires": "7"})

        assert response.status_code == 400
        assert "There's nothing to see here" in client.get("/").text


class TestSignupAndLogin:
    """Account flows"""

    def test_signup_flash(self, client):
        page = client.get("/user/signup")
        response = client.post("/user/signup", data={
            "name": "Bob",
            "email": "bob@example.com",
            "password": TEST_PASSWORD,
            "csrf_token": extract_csrf_token(page.text),
        })

        assert response.status_code == 200
        assert response.url.path == "/user/login"
        assert "Your signup was successful. Please log in." in response.text

    def test_signup_validation(self, client):
        page = client.get("/user/signup")
        response = client.post("/user/signup", data={
            "name": "",
            "email": "not-an-email",
            "password": "short",
            "csrf_token": extract_csrf_token(page.text),
        })

        assert response.status_code == 422
        assert "This field cannot be blank" in response.text
        assert "This field must be a valid email address" in response.text
        assert "This field must be at least 8 characters long" in response.text
        # The password is never echoed back
        assert "short" not in response.text

    def test_duplicate_email(self, client):
        signup_and_login(client, "carol@example.com")
        client.post("/user/logout", data={"csrf_token": extract_csrf_token(client.get("/").text)})

        page = client.get("/user/signup")
        response = client.post("/user/signup", data={
            "name": "Carol",
            "email": "CAROL@example.com",
            "password": TEST_PASSWORD,
            "csrf_token": extract_csrf_token(page.text),
        })

        assert response.status_code == 422
        assert "Email address is already in use" in response.text

    def test_wrong_password(self, client):
        signup_and_login(client)
        client.post("/user/logout", data={"csrf_token": extract_csrf_token(client.get("/").text)})

        page = client.get("/user/login")
        response = client.post("/user/login", data={
            "email": "alice@example.com",
            "password": "wrong-password",
            "csrf_token": extract_csrf_token(page.text),
        })

        assert response.status_code == 422
        assert "Email or password is incorrect" in response.text

    def test_login_renews_session_token(self, client):
        page = client.get("/user/signup")
        client.post("/user/signup", data={
            "name": "Dan",
            "email": "dan@example.com",
            "password": TEST_PASSWORD,
            "csrf_token": extract_csrf_token(page.text),
        })
        page = client.get("/user/login")
        before = client.cookies.get("session")

        response = client.post("/user/login", data={
            "email": "dan@example.com",
            "password": TEST_PASSWORD,
            "csrf_token": extract_csrf_token(page.text),
        }, follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/snippet/create"
        assert client.cookies.get("session") != before

    def test_logout(self, client):
        signup_and_login(client)
        home = client.get("/")
        assert "Logout" in home.text

        response = client.post("/user/logout", data={"csrf_token": extract_csrf_token(home.text)})

        assert response.status_code == 200
        assert "logged out successfully" in response.text
        assert "Logout" not in response.text
        assert client.get("/snippet/create", follow_redirects=False).status_code == 303

    def test_anonymous_logout_rejected_by_csrf(self, client):
        assert client.post("/user/logout", follow_redirects=False).status_code == 400


class TestAuthenticationState:
    """What happens when the user behind a session changes"""

    def test_deleted_user_treated_as_anonymous(self, client, users):
        signup_and_login(client)
        users.exists = AsyncMock(return_value=False)

        response = client.get("/snippet/create", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/user/login"

    def test_lookup_failure_is_server_error(self, client, users):
        signup_and_login(client)
        users.exists = AsyncMock(side_effect=RuntimeError("db down"))

        response = client.get("/")

        assert response.status_code == 500
        assert response.text == "Internal Server Error"
