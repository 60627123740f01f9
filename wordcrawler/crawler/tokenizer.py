"""
Streaming HTML tokenizer.

Bytes are pushed into lxml's HTML parser with a parser target, so tag and text
events are produced as the document arrives and no element tree is built.
"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, Iterable, Iterator, List, Optional

from lxml import etree


# Elements that never have content; lxml reports them as start + end
VOID_ELEMENTS = frozenset([
    'area', 'base', 'br', 'col', 'embed', 'hr', 'img', 'input',
    'link', 'meta', 'param', 'source', 'track', 'wbr'
])


class TokenType(Enum):
    """Kinds of tokens emitted by the tokenizer."""
    TEXT = 1
    START_TAG = 2
    END_TAG = 3
    SELF_CLOSING_TAG = 4
    ERROR = 5


@dataclass
class Token:
    """A single HTML token. Tag tokens carry a lowercase name and attributes."""
    type: TokenType
    data: str = ''
    attrs: Dict[str, str] = field(default_factory=dict)


class _TokenCollector:
    """lxml parser target that buffers events as Token objects."""

    def __init__(self):
        self.tokens: Deque[Token] = deque()
        self._text: List[str] = []

    def _flush_text(self):
        if self._text:
            text = ''.join(self._text)
            self._text = []
            if text.strip():
                self.tokens.append(Token(TokenType.TEXT, data=text))

    def start(self, tag, attrib):
        self._flush_text()
        if not isinstance(tag, str):
            return
        name = tag.lower()
        attrs = {str(key).lower(): value for key, value in attrib.items()}
        token_type = TokenType.SELF_CLOSING_TAG if name in VOID_ELEMENTS else TokenType.START_TAG
        self.tokens.append(Token(token_type, data=name, attrs=attrs))

    def end(self, tag):
        self._flush_text()
        if not isinstance(tag, str):
            return
        name = tag.lower()
        if name in VOID_ELEMENTS:
            return
        self.tokens.append(Token(TokenType.END_TAG, data=name))

    def data(self, data):
        self._text.append(data)

    def close(self):
        self._flush_text()

    def drain(self) -> Iterator[Token]:
        while self.tokens:
            yield self.tokens.popleft()


class HTMLTokenizer:
    """
    Turns a stream of HTML byte chunks into Token objects.

    Iteration ends at end of stream. If lxml gives up on the input, the tokens
    collected so far are yielded followed by a single ERROR token.
    """

    def __init__(self, encoding: Optional[str] = None):
        self.encoding = encoding

    def tokenize(self, chunks: Iterable[bytes]) -> Iterator[Token]:
        collector = _TokenCollector()
        try:
            parser = etree.HTMLParser(target=collector, encoding=self.encoding)
        except LookupError:
            # charset unknown to libxml2; let it detect the encoding itself
            parser = etree.HTMLParser(target=collector)

        try:
            for chunk in chunks:
                if not chunk:
                    continue
                parser.feed(chunk)
                yield from collector.drain()
            parser.close()
        except etree.LxmlError as e:
            collector.close()
            yield from collector.drain()
            yield Token(TokenType.ERROR, data=str(e) or type(e).__name__)
            return

        yield from collector.drain()
