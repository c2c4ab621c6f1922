# snippetbox/models/forms.py
"""Posted forms. Fields are bound here and checked by a Validator in the handlers."""
from pydantic import BaseModel


class SnippetCreateForm(BaseModel):
    title: str = ""
    content: str = ""
    expires: int = 365


class UserSignupForm(BaseModel):
    name: str = ""
    email: str = ""
    password: str = ""


class UserLoginForm(BaseModel):
    email: str = ""
    password: str = ""
