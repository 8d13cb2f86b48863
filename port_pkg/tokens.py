"""
Markdown event stream for Port.

Mistune parses a document into a tree of tokens. This module flattens that
tree into an ordered, lazy stream of start/end/text events that can be
consumed in a single forward pass, and renders a (possibly rewritten) event
sequence back to HTML with mistune's own renderer.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Union

import mistune

# Extensions enabled for every post.
PLUGINS = ['table', 'task_lists', 'strikethrough']


@dataclass
class Tag:
    """A container node of the Markdown tree (heading, paragraph, image, ...)."""
    type: str
    attrs: Dict[str, Any] = field(default_factory=dict)
    props: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_token(cls, token: Dict[str, Any]) -> 'Tag':
        props = {
            key: value for key, value in token.items()
            if key not in ('type', 'attrs', 'children', 'raw')
        }
        return cls(token['type'], dict(token.get('attrs') or {}), props)

    def to_token(self) -> Dict[str, Any]:
        token = {'type': self.type}
        token.update(self.props)
        if self.attrs:
            token['attrs'] = dict(self.attrs)
        return token

    def is_heading(self, level: int) -> bool:
        return self.type == 'heading' and self.attrs.get('level') == level

    @property
    def is_image(self) -> bool:
        return self.type == 'image'

    @property
    def is_paragraph(self) -> bool:
        return self.type == 'paragraph'

    @property
    def is_code_block(self) -> bool:
        return self.type == 'block_code'

    @property
    def is_fenced_code(self) -> bool:
        return self.is_code_block and self.props.get('style') == 'fenced'

    @property
    def language(self) -> str:
        """First word of a fenced block's info string, or ''."""
        info = (self.attrs.get('info') or '').strip()
        return info.split(None, 1)[0] if info else ''


@dataclass
class Start:
    tag: Tag


@dataclass
class End:
    tag: Tag


@dataclass
class Text:
    text: str


@dataclass
class Html:
    """Raw HTML that replaces one or more source events."""
    html: str


@dataclass
class Leaf:
    """Any childless token that is passed through untouched."""
    token: Dict[str, Any]


Event = Union[Start, End, Text, Html, Leaf]


def create_parser():
    """Create a mistune parser that produces a token tree instead of HTML."""
    return mistune.create_markdown(renderer='ast', plugins=PLUGINS)


def create_renderer():
    """Create the HTML renderer, with the plugin render methods registered."""
    return mistune.create_markdown(escape=False, plugins=PLUGINS).renderer


def iter_events(tokens: Iterable[Dict[str, Any]]) -> Iterator[Event]:
    """Flatten a mistune token tree into document-ordered events."""
    for token in tokens:
        kind = token['type']
        if kind == 'text':
            # Empty headings carry an empty text run.
            if token['raw']:
                yield Text(token['raw'])
        elif kind == 'block_code':
            # Code bodies are exposed as a text run between start and end.
            tag = Tag.from_token(token)
            yield Start(tag)
            yield Text(token.get('raw', ''))
            yield End(tag)
        elif 'children' in token:
            tag = Tag.from_token(token)
            yield Start(tag)
            yield from iter_events(token['children'])
            yield End(tag)
        else:
            yield Leaf(token)


def parse_events(raw: str, parser=None) -> Iterator[Event]:
    """Parse Markdown text into a lazy event stream."""
    parser = parser or create_parser()
    return iter_events(parser(raw))


def build_tree(events: Iterable[Event]) -> List[Dict[str, Any]]:
    """Rebuild a mistune token tree from an event sequence."""
    root: List[Dict[str, Any]] = []
    children = [root]
    open_tokens: List[Dict[str, Any]] = []

    for event in events:
        if isinstance(event, Start):
            token = event.tag.to_token()
            token['children'] = []
            children[-1].append(token)
            children.append(token['children'])
            open_tokens.append(token)
        elif isinstance(event, End):
            if not open_tokens or open_tokens[-1]['type'] != event.tag.type:
                raise ValueError(f"Unbalanced end of '{event.tag.type}' in event stream")
            token = open_tokens.pop()
            body = children.pop()
            if token['type'] == 'block_code':
                del token['children']
                token['raw'] = ''.join(child.get('raw', '') for child in body)
        elif isinstance(event, Text):
            children[-1].append({'type': 'text', 'raw': event.text})
        elif isinstance(event, Html):
            kind = 'block_html' if len(children) == 1 else 'inline_html'
            children[-1].append({'type': kind, 'raw': event.html})
        elif isinstance(event, Leaf):
            children[-1].append(event.token)
        else:
            raise TypeError(f"Unknown event: {event!r}")

    if open_tokens:
        raise ValueError(f"Unclosed '{open_tokens[-1]['type']}' in event stream")
    return root


def render_events(events: Iterable[Event], renderer=None) -> str:
    """Render an event sequence to an HTML string."""
    renderer = renderer or create_renderer()
    return renderer(build_tree(events), mistune.BlockState())
