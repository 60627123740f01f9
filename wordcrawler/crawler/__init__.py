"""
Web crawler core components.
"""

from .url_frontier import URLFrontier, FIFOQueue
from .fetcher import WebFetcher, FetchResult, FetchError
from .tokenizer import HTMLTokenizer, Token, TokenType
from .scanner import PageScanner, ScanResult
from .scheduler import CrawlerScheduler, CrawlStats, PendingWorkCounter

__all__ = [
    'URLFrontier', 'FIFOQueue',
    'WebFetcher', 'FetchResult', 'FetchError',
    'HTMLTokenizer', 'Token', 'TokenType',
    'PageScanner', 'ScanResult',
    'CrawlerScheduler', 'CrawlStats', 'PendingWorkCounter'
]
