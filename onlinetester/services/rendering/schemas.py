"""Result dataclasses returned by the rendering engine."""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Locale:
    """A locale the engine can activate while rendering.

    Attributes:
        name: Java-style locale name used in requests (``'pt_BR'``).
        language_code: Django language code activated for the render (``'pt-br'``).
        display_name: English name shown in the UI.
    """

    name: str
    language_code: str
    display_name: str

    def __str__(self):
        return self.name


@dataclass(frozen=True)
class CauseLink:
    """One link of a failure cause chain, outermost first."""

    kind: str
    message: str


@dataclass(frozen=True)
class RenderSuccess:
    """Rendered template output."""

    text: str
    truncated: bool = False


@dataclass(frozen=True)
class RenderFailure:
    """The engine accepted the template but evaluating it failed."""

    causes: tuple[CauseLink, ...]

    def flatten(self) -> str:
        """Join the cause chain into a single message.

        The outermost cause contributes its message alone; each deeper cause is
        appended on its own paragraph as ``Caused by <kind>: <message>``.
        """
        if not self.causes:
            return ''
        head, *rest = self.causes
        parts = [head.message]
        for link in rest:
            parts.append(f'Caused by {link.kind}: {link.message}')
        return '\n\n'.join(parts)


RenderResult = Union[RenderSuccess, RenderFailure]
