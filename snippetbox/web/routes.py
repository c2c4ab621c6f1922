# snippetbox/web/routes.py
from fastapi import FastAPI

from snippetbox.middleware.chain import Chain, as_endpoint
from snippetbox.web.handlers import Handlers, ping


def register_routes(app: FastAPI, handlers: Handlers, dynamic: Chain, protected: Chain) -> None:
    """
    Mount every route. `/ping` only gets the outer chain; pages that use the
    session go through `dynamic`, pages behind login through `protected`.
    """
    app.add_route("/ping", as_endpoint(ping), methods=["GET"])

    app.add_route("/", as_endpoint(dynamic.then(handlers.home)), methods=["GET"])
    app.add_route("/snippet/view/{id}", as_endpoint(dynamic.then(handlers.snippet_view)), methods=["GET"])
    app.add_route("/user/signup", as_endpoint(dynamic.then(handlers.user_signup)), methods=["GET"])
    app.add_route("/user/signup", as_endpoint(dynamic.then(handlers.user_signup_post)), methods=["POST"])
    app.add_route("/user/login", as_endpoint(dynamic.then(handlers.user_login)), methods=["GET"])
    app.add_route("/user/login", as_endpoint(dynamic.then(handlers.user_login_post)), methods=["POST"])

    app.add_route("/snippet/create", as_endpoint(protected.then(handlers.snippet_create)), methods=["GET"])
    app.add_route("/snippet/create", as_endpoint(protected.then(handlers.snippet_create_post)), methods=["POST"])
    app.add_route("/user/logout", as_endpoint(protected.then(handlers.user_logout_post)), methods=["POST"])
