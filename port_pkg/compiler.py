"""
Markdown compiler for Port posts.

A post is compiled in one forward pass over its event stream. The first
level-1 heading is diverted into a separate title buffer, images and videos
are replaced by captioned figures, fenced code blocks are highlighted with
Pygments, and the plain text of the body is collected as an excerpt.
"""

import enum
import html
import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import TextLexer, get_lexer_by_name
from pygments.util import ClassNotFound

from .tokens import End, Event, Html, Leaf, Start, Text, create_parser, create_renderer, iter_events, render_events

IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.webp')
VIDEO_EXTENSIONS = ('.mp4',)

EXCERPT_LENGTH = 140
ELLIPSIS = '…'

logger = logging.getLogger('Port.compiler')


class UnknownLanguageError(ValueError):
    """A fenced code block names a language Pygments does not know."""


class TitleMode(enum.Enum):
    NORMAL = 'normal'
    IN_TITLE = 'in_title'


@dataclass
class CompilationResult:
    html: str
    title: str
    excerpt: str
    main_image: Optional[str] = None

    @property
    def description(self) -> Optional[str]:
        return self.excerpt or None


def is_image(url: str) -> bool:
    return url.lower().endswith(IMAGE_EXTENSIONS)


def is_video(url: str) -> bool:
    return url.lower().endswith(VIDEO_EXTENSIONS)


def image_html(url: str, title: str, caption: str) -> str:
    """`figure` image HTML"""
    return (
        f'<figure>'
        f'<a href="{url}" title="{title}">'
        f'<img src="{url}" title="{title}">'
        f'</a>'
        f'<figcaption>{caption}</figcaption>'
        f'</figure>'
    )


def video_html(url: str, title: str, caption: str) -> str:
    """`figure` video HTML"""
    return (
        f'<figure>'
        f'<video autoplay loop muted src="{url}" title="{title}" />'
        f'<figcaption>{caption}</figcaption>'
        f'</figure>'
    )


def truncate_excerpt(text: str) -> str:
    """Shorten an excerpt to fit a description, marking the cut with an ellipsis."""
    if len(text) <= EXCERPT_LENGTH:
        return text
    return text[:EXCERPT_LENGTH - 1] + ELLIPSIS


def resolve_lexer(language: str):
    """Find the Pygments lexer for a code block language tag."""
    if not language:
        return TextLexer()
    try:
        return get_lexer_by_name(language)
    except ClassNotFound:
        raise UnknownLanguageError(f"Unknown code block language: '{language}'")


def highlight_code(code: str, language: str) -> str:
    """Highlight a code sample and wrap it in a `pre` element."""
    lexer = resolve_lexer(language)
    highlighted = highlight(code, lexer, HtmlFormatter(nowrap=True))
    return f'<pre class="highlight">{highlighted}</pre>'


def _absorb_caption(events: Iterator[Event]) -> str:
    """Consume events up to the end of the current image, returning its text."""
    caption = []
    depth = 0
    for event in events:
        if isinstance(event, Start):
            depth += 1
        elif isinstance(event, End):
            if depth == 0:
                break
            depth -= 1
        elif isinstance(event, Text):
            caption.append(event.text)
    return ''.join(caption)


def _absorb_code(events: Iterator[Event]) -> str:
    """Consume the body and end of the current code block."""
    event = next(events, None)
    if isinstance(event, Text):
        code = event.text
        event = next(events, None)
    else:
        code = ''
    if not isinstance(event, End):
        raise ValueError('Code block is missing its end marker')
    return code


def compile_events(events: Iterator[Event], renderer=None) -> CompilationResult:
    """Compile a Markdown event stream, see `compile_markdown`."""
    renderer = renderer or create_renderer()
    events = iter(events)
    mode = TitleMode.NORMAL
    body_events: List[Event] = []
    title_events: List[Event] = []
    excerpt: List[str] = []
    main_image = None

    for event in events:
        # Title extraction: only the first H1 that carries content is special.
        if isinstance(event, Start) and event.tag.is_heading(1) and not title_events:
            mode = TitleMode.IN_TITLE
            continue
        if isinstance(event, End) and event.tag.is_heading(1) and mode is TitleMode.IN_TITLE:
            mode = TitleMode.NORMAL
            continue
        if mode is TitleMode.IN_TITLE:
            title_events.append(event)
            continue

        replacement = None
        if isinstance(event, Text):
            excerpt.append(event.text)
        elif isinstance(event, End) and event.tag.is_paragraph:
            excerpt.append('\n')
        elif isinstance(event, Start) and event.tag.is_image:
            url = event.tag.attrs.get('url', '')
            title = event.tag.attrs.get('title') or ''
            if main_image is None and is_image(url):
                main_image = url
            caption = _absorb_caption(events)
            if is_video(url):
                replacement = Html(video_html(url, title, caption))
            else:
                replacement = Html(image_html(url, title, caption))
        elif isinstance(event, Start) and event.tag.is_fenced_code:
            code = _absorb_code(events)
            replacement = Html(highlight_code(code, event.tag.language))
        elif isinstance(event, (Start, End, Html, Leaf)):
            pass
        else:
            raise TypeError(f"Unknown event: {event!r}")

        body_events.append(replacement or event)

    return CompilationResult(
        html=render_events(body_events, renderer),
        title=render_events(title_events, renderer),
        excerpt=truncate_excerpt(html.unescape(''.join(excerpt))),
        main_image=main_image,
    )


def compile_markdown(raw: str, parser=None, renderer=None) -> CompilationResult:
    """
    Compile a Markdown document to HTML, extracting its title, excerpt and
    main image along the way.

    Raises:
        UnknownLanguageError: if a fenced code block names an unknown language.
    """
    parser = parser or create_parser()
    events = iter_events(parser(raw))
    result = compile_events(events, renderer)
    logger.debug(f"Compiled markdown: title={result.title!r}, main_image={result.main_image!r}")
    return result
