"""Output formats supported by the rendering engine.

An output format decides how interpolated values are escaped. Markup formats
(HTML, XHTML, XML) use Jinja's MarkupSafe autoescaping, RTF escapes its control
characters in the finalize hook, all other formats pass text through.
"""

from dataclasses import dataclass
from typing import Callable, Optional

_RTF_ESCAPES = str.maketrans({'\\': '\\\\', '{': '\\{', '}': '\\}'})


def escape_rtf(text: str) -> str:
    """Escape the characters RTF treats as control syntax."""
    return text.translate(_RTF_ESCAPES)


@dataclass(frozen=True)
class OutputFormat:
    """A named output format and its escaping policy."""

    name: str
    autoescape: bool = False
    escaper: Optional[Callable[[str], str]] = None

    def __str__(self):
        return self.name


UNDEFINED = OutputFormat('undefined')
PLAIN_TEXT = OutputFormat('plainText')
HTML = OutputFormat('HTML', autoescape=True)
XHTML = OutputFormat('XHTML', autoescape=True)
XML = OutputFormat('XML', autoescape=True)
RTF = OutputFormat('RTF', escaper=escape_rtf)
JAVASCRIPT = OutputFormat('JavaScript')
JSON = OutputFormat('JSON')
CSS = OutputFormat('CSS')

OUTPUT_FORMATS: tuple[OutputFormat, ...] = (
    UNDEFINED, PLAIN_TEXT, HTML, XHTML, XML, RTF, JAVASCRIPT, JSON, CSS,
)
