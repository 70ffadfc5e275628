"""Input cleaning for values that end up rendered by the storefront."""
import nh3
from markupsafe import Markup

RICH_TEXT_TAGS = {
    "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "p", "a", "ul", "ol",
    "li", "b", "i", "strong", "em", "strike", "code", "hr", "br", "div",
    "table", "thead", "caption", "tbody", "tr", "th", "td", "pre", "img",
    "span", "u",
}

RICH_TEXT_ATTRIBUTES = {
    "a": {"href", "name", "target"},
    "img": {"src", "alt", "height", "width"},
    "*": {"class", "style"},
}


def sanitize_text(value):
    """Strips every tag from a plain-text field (names, addresses, headings)."""
    if value is None:
        return None
    return Markup(str(value)).striptags().strip()


def sanitize_html(value):
    """Cleans a rich-text field against the editor's tag allowlist."""
    if value is None:
        return None
    return nh3.clean(
        str(value),
        tags=RICH_TEXT_TAGS,
        attributes=RICH_TEXT_ATTRIBUTES,
        url_schemes={"http", "https", "data"},
        link_rel="noopener noreferrer",
    )


def sanitize_email(value):
    return (value or "").strip().lower()
