"""
Page scanner that counts visible words and collects same-host links.
"""

import codecs
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional, Set, Union

from .tokenizer import HTMLTokenizer, Token, TokenType
from ..utils.urls import get_host, resolve_link


# Elements whose content is markup noise rather than text
SUPPRESSED_TAGS = frozenset(['style', 'script', 'link'])

DEFAULT_ENCODING = 'utf-8'


@dataclass
class ScanResult:
    """Words and links found on one page."""
    url: str
    words: Counter = field(default_factory=Counter)
    links: Set[str] = field(default_factory=set)
    error: Optional[str] = None

    @property
    def word_count(self) -> int:
        return sum(self.words.values())


class PageScanner:
    """
    Scans a page token by token.

    Text inside style/script/link elements is skipped; every other text token
    is split on whitespace and counted in lowercase. Anchors pointing at the
    page's own host are collected as links.
    """

    def __init__(self, default_encoding: str = DEFAULT_ENCODING):
        self.default_encoding = default_encoding
        self.logger = logging.getLogger(__name__)

    def scan(self, page_url: str, body: Union[bytes, Iterable[bytes]],
             encoding: Optional[str] = None) -> ScanResult:
        """
        Scan one page.

        Args:
            page_url: The URL the page was fetched from
            body: Raw page bytes, or an iterable of byte chunks
            encoding: Charset reported by the server, if any

        Returns:
            ScanResult; on a tokenize error it holds what was found before it
        """
        if isinstance(body, bytes):
            body = [body]

        result = ScanResult(url=page_url)
        page_host = get_host(page_url)
        tokenizer = HTMLTokenizer(self._resolve_encoding(page_url, encoding))
        suppressed = False

        for token in tokenizer.tokenize(body):
            if token.type is TokenType.ERROR:
                result.error = token.data
                self.logger.debug(f"Tokenize error on {page_url}: {token.data}")
                break

            if token.type is TokenType.TEXT:
                if not suppressed:
                    self._count_words(token.data, result.words)
                continue

            if token.data in SUPPRESSED_TAGS:
                if token.type is TokenType.START_TAG:
                    suppressed = True
                elif token.type is TokenType.END_TAG:
                    suppressed = False

            if token.data == 'a':
                self._collect_link(token, page_url, page_host, result.links)

        self.logger.debug(f"Scanned {page_url}: {result.word_count} words, "
                          f"{len(result.links)} links")
        return result

    def _resolve_encoding(self, page_url: str, encoding: Optional[str]) -> str:
        """Use the server charset when Python knows it, else the default."""
        if not encoding:
            return self.default_encoding
        try:
            codecs.lookup(encoding)
        except LookupError:
            self.logger.debug(f"Unknown charset {encoding!r} on {page_url}, using {self.default_encoding}")
            return self.default_encoding
        return encoding

    def _count_words(self, text: str, words: Counter):
        for word in text.split():
            words[word.lower()] += 1

    def _collect_link(self, token: Token, page_url: str, page_host: str, links: Set[str]):
        href = token.attrs.get('href')
        if href is None:
            return

        try:
            link = resolve_link(page_url, href)
            if get_host(link) == page_host:
                links.add(link)
        except ValueError as e:
            self.logger.debug(f"Ignoring link {href!r} on {page_url}: {e}")
