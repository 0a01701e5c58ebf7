"""
XML request templates for the Tally HTTP API.

Templates are Jinja2 files that render XML envelopes and body fragments.
Substituted values are XML-escaped; pre-rendered fragments must be passed
through the ``safe`` filter by the template itself.
"""
from datetime import date
from pathlib import Path
from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

# Template directory
TEMPLATE_DIR = Path(__file__).parent

# Available templates
TEMPLATES = {
    "envelope": "envelope.xml.j2",
    "list_of_accounts": "list_of_accounts.xml.j2",
    "list_of_companies": "list_of_companies.xml.j2",
    "voucher_register": "voucher_register.xml.j2",
    "audit_voucher": "audit_voucher.xml.j2",
}

_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(enabled_extensions=("xml.j2",), default_for_string=True),
    undefined=StrictUndefined,
    keep_trailing_newline=False,
)


def get_template_path(name: str) -> Path:
    """Get path to a template file."""
    if name not in TEMPLATES:
        raise ValueError(f"Unknown template: {name}. Valid: {list(TEMPLATES.keys())}")
    return TEMPLATE_DIR / TEMPLATES[name]


def render(name: str, **context) -> str:
    """Render a named template, stripped of surrounding whitespace."""
    get_template_path(name)
    return _env.get_template(TEMPLATES[name]).render(**context).strip()


def tally_date(d: date) -> str:
    """Format a date the way Tally's static variables expect (01-Apr-2024)."""
    return d.strftime("%d-%b-%Y")
