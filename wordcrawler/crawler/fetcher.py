"""
Web page fetcher shared by all crawler worker threads.

The aiohttp session lives on a private event loop running in its own thread.
Workers call the blocking fetch() which hands the request to that loop, so a
single session and connection pool serve every worker.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional

import aiohttp
from aiohttp import ClientError, ClientSession, ClientTimeout


DEFAULT_MAX_CONTENT_SIZE = 10 * 1024 * 1024


class FetchError(Exception):
    """Network or transport failure for a single URL."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


@dataclass
class FetchResult:
    """Result of a fetch operation."""
    url: str
    status_code: int
    content: Optional[bytes] = None
    error: Optional[str] = None
    fetch_time: float = 0.0
    content_type: Optional[str] = None
    encoding: Optional[str] = None


class WebFetcher:
    """
    Fetches web pages for concurrent worker threads.
    """

    def __init__(self, user_agent: str, request_timeout: int = 30,
                 max_concurrent_requests: int = 10,
                 max_content_size: int = DEFAULT_MAX_CONTENT_SIZE):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.max_concurrent_requests = max_concurrent_requests
        self.max_content_size = max_content_size

        self.logger = logging.getLogger(__name__)

        # Session management
        self.session: Optional[ClientSession] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_thread: Optional[threading.Thread] = None
        self._stats_lock = threading.Lock()

        # Statistics
        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'total_bytes_downloaded': 0
        }

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def start(self):
        """Start the transport loop and open the shared session."""
        if self.session is not None:
            return

        self._loop = asyncio.new_event_loop()
        self._loop_thread = threading.Thread(
            target=self._loop.run_forever,
            name="fetcher-loop",
            daemon=True
        )
        self._loop_thread.start()
        self.session = self._submit(self._open_session())
        self.logger.info("WebFetcher session started")

    def close(self):
        """Close the session and stop the transport loop."""
        if self._loop is None:
            return

        if self.session is not None:
            self._submit(self.session.close())
            self.session = None

        self._loop.call_soon_threadsafe(self._loop.stop)
        self._loop_thread.join()
        self._loop.close()
        self._loop = None
        self._loop_thread = None
        self.logger.info("WebFetcher session closed")

    def _submit(self, coro):
        """Run a coroutine on the transport loop and wait for its result."""
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result()

    async def _open_session(self) -> ClientSession:
        timeout = ClientTimeout(total=self.request_timeout)
        headers = {'User-Agent': self.user_agent}

        return aiohttp.ClientSession(
            timeout=timeout,
            headers=headers,
            connector=aiohttp.TCPConnector(
                limit=self.max_concurrent_requests * 2,
                limit_per_host=self.max_concurrent_requests,
                ttl_dns_cache=300
            )
        )

    def fetch(self, url: str) -> FetchResult:
        """
        Fetch a single URL, blocking the calling thread until it completes.

        Args:
            url: The URL to fetch

        Returns:
            FetchResult with the raw body, or with error set on failure
        """
        if self.session is None:
            raise RuntimeError("WebFetcher.start() must be called before fetch()")
        return self._submit(self._fetch(url))

    async def _fetch(self, url: str) -> FetchResult:
        start_time = time.time()
        self._count('total_requests')

        try:
            async with self.session.get(url) as response:
                content_type = response.headers.get('content-type', '').lower()

                # Only download text content
                if not self._is_text_content(content_type):
                    self._count('failed_requests')
                    self.logger.debug(f"Skipping non-text content: {url} ({content_type})")
                    return FetchResult(
                        url=url,
                        status_code=response.status,
                        content_type=content_type,
                        error="Non-text content type",
                        fetch_time=time.time() - start_time
                    )

                content = await self._read_content_safely(response)
                if content is None:
                    self._count('failed_requests')
                    return FetchResult(
                        url=url,
                        status_code=response.status,
                        content_type=content_type,
                        error="Content too large",
                        fetch_time=time.time() - start_time
                    )

                self._count('successful_requests')
                self._count('total_bytes_downloaded', len(content))
                self.logger.debug(f"Fetched {url}: {response.status} ({len(content)} bytes)")
                return FetchResult(
                    url=url,
                    status_code=response.status,
                    content=content,
                    content_type=content_type,
                    encoding=response.charset,
                    fetch_time=time.time() - start_time
                )

        except asyncio.TimeoutError:
            error_msg = "Request timeout"

        except ClientError as e:
            error_msg = f"Client error: {e}"

        except ValueError as e:
            # yarl rejects some URLs only when the request is built
            error_msg = f"Invalid URL: {e}"

        self._count('failed_requests')
        return FetchResult(
            url=url,
            status_code=0,
            error=error_msg,
            fetch_time=time.time() - start_time
        )

    def _is_text_content(self, content_type: str) -> bool:
        """Check if content type is text-based."""
        if not content_type:
            return True

        text_types = [
            'text/html',
            'text/plain',
            'text/xml',
            'application/xml',
            'application/xhtml+xml'
        ]

        return any(text_type in content_type for text_type in text_types)

    async def _read_content_safely(self, response) -> Optional[bytes]:
        """
        Read the response body, giving up once it exceeds max_content_size.

        Returns:
            Raw body bytes or None if too large
        """
        content_length = response.headers.get('content-length')
        if content_length and content_length.isdigit() and int(content_length) > self.max_content_size:
            self.logger.warning(f"Content too large ({content_length} bytes): {response.url}")
            return None

        chunks = []
        size = 0
        async for chunk in response.content.iter_chunked(8192):
            chunks.append(chunk)
            size += len(chunk)
            if size > self.max_content_size:
                self.logger.warning(f"Content exceeded size limit during reading: {response.url}")
                return None

        return b''.join(chunks)

    def _count(self, key: str, amount: int = 1):
        with self._stats_lock:
            self.stats[key] += amount

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        with self._stats_lock:
            return self.stats.copy()

