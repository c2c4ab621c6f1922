# snippetbox/web/templates.py
"""Template cache built once at startup from ui/html/pages"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, Template, select_autoescape

from snippetbox.core.validator import Validator

UI_DIR = Path(__file__).resolve().parent.parent / "ui" / "html"


@dataclass
class TemplateData:
    """Everything a page template can read"""
    current_year: int = 0
    flash: str = ""
    is_authenticated: bool = False
    csrf_token: str = ""
    snippet: Any = None
    snippets: List[Any] = field(default_factory=list)
    form: Any = None
    validator: Validator = field(default_factory=Validator)


def human_date(t: Optional[datetime]) -> str:
    """Format a timestamp as '17 Mar 2022 at 10:15' in UTC, '' for no time"""
    if t is None:
        return ""
    if t.tzinfo is not None:
        t = t.astimezone(timezone.utc)
    return t.strftime("%d %b %Y at %H:%M")


def new_environment(directory: Path = UI_DIR) -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(directory)),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True
    )
    env.filters["human_date"] = human_date
    return env


def new_template_cache(directory: Path = UI_DIR) -> Dict[str, Template]:
    """Compile every page under pages/ once, keyed by file name"""
    env = new_environment(directory)
    cache: Dict[str, Template] = {}

    for page in sorted((directory / "pages").glob("*.html")):
        cache[page.name] = env.get_template(f"pages/{page.name}")

    return cache
