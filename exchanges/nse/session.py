"""
NSE Session Manager

This module owns the single aiohttp session used to talk to NSE. The NSE API is
undocumented and hostile to scripted clients:

- Every API call needs anti-bot cookies that are only handed out when a
  normal page is visited first ("priming")
- Cookies expire without notice; the server then answers 401
- A browser-like User-Agent and a plausible Referer are required
- Calling too quickly gets the client blocked

SessionManager hides all of this behind three primitives used by the endpoint
modules:

    request_json(url, query)      -> parsed JSON body
    request_text(url, query)      -> raw body (CSV endpoints)
    download_to_file(url, folder) -> absolute Path of the downloaded file

Retry Policy:
    FRESH --401--> prime, replay once --> PRIMED_RETRY --401--> HttpError(401)
    Any other non-2xx status is raised immediately as HttpError.

Cookie Persistence:
    The cookie jar is saved to the download directory on close() and loaded
    on start(), so a later process can skip priming. A missing or corrupt file
    just means starting without cookies.

Usage:
    async with SessionManager(RateThrottle.from_rps({"lookup": 15, "default": 8})) as session:
        status = await session.request_json("https://www.nseindia.com/api/marketStatus")
"""

import asyncio
import json
import time
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
from urllib.parse import unquote, urlsplit

import aiohttp

from core.config import settings
from core.errors import DownloadError, HttpError
from core.logging import get_logger, log_api_request, log_api_response
from exchanges.nse.throttle import RateThrottle, classify

CHUNK_SIZE = 64 * 1024


# ============================================
# Retry Policy
# ============================================

class RetryState(Enum):
    FRESH = "fresh"
    PRIMED_RETRY = "primed_retry"
    FAILED = "failed"


class RetryDecision(Enum):
    RETURN = "return"
    PRIME_AND_RETRY = "prime_and_retry"
    FAIL = "fail"


class PrimingRetryPolicy:
    """
    Two-step retry policy for one logical request.

    A 401 on the first attempt asks the caller to re-prime cookies and replay;
    a 401 on the replay fails. Any other status is handed back unchanged.

    Example:
        >>> policy = PrimingRetryPolicy()
        >>> policy.on_status(401)
        <RetryDecision.PRIME_AND_RETRY: 'prime_and_retry'>
        >>> policy.on_status(401)
        <RetryDecision.FAIL: 'fail'>
    """

    def __init__(self) -> None:
        self.state = RetryState.FRESH

    def on_status(self, status: int) -> RetryDecision:
        if status != 401:
            return RetryDecision.RETURN

        if self.state is RetryState.FRESH:
            self.state = RetryState.PRIMED_RETRY
            return RetryDecision.PRIME_AND_RETRY

        self.state = RetryState.FAILED
        return RetryDecision.FAIL


# ============================================
# Session Manager
# ============================================

class SessionManager:
    """
    Cookie-primed, throttled HTTP session for NSE.

    Attributes:
        throttle: RateThrottle consulted before every outbound call
        download_dir: Default download folder (also holds the cookie jar)
        cookie_path: File the cookie jar is persisted to
        prime_url: Page fetched to acquire anti-bot cookies
        session: aiohttp ClientSession (created in start())

    Notes:
        - One instance per client; the throttle is injected so every endpoint
          module of that client shares the same spacing state
        - Timeouts surface as asyncio.TimeoutError to the caller
    """

    def __init__(
        self,
        throttle: RateThrottle,
        download_dir: Optional[str] = None,
        prime_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        cookie_file_name: Optional[str] = None
    ):
        self.throttle = throttle
        self.download_dir = Path(download_dir or settings.download_dir).expanduser().resolve()
        self.cookie_path = self.download_dir / (cookie_file_name or settings.cookie_file_name)
        self.prime_url = prime_url or settings.nse_prime_url
        self.home_url = settings.nse_home_url.rstrip("/")
        self.user_agent = user_agent or settings.user_agent
        self.timeout = timeout or settings.request_timeout

        self.session: Optional[aiohttp.ClientSession] = None
        self.cookie_jar: Optional[aiohttp.CookieJar] = None
        self._primed = False
        self._prime_lock = asyncio.Lock()
        self.logger = get_logger(__name__)

    # ============================================
    # Lifecycle
    # ============================================

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self) -> None:
        """
        Create the HTTP session and load persisted cookies if present.
        """
        if self.session is not None:
            return

        self.download_dir.mkdir(parents=True, exist_ok=True)
        self.cookie_jar = aiohttp.CookieJar()
        self._primed = self.load_cookies()

        self.session = aiohttp.ClientSession(
            cookie_jar=self.cookie_jar,
            headers={
                "User-Agent": self.user_agent,
                "Accept": "*/*",
                "Accept-Language": "en-US,en;q=0.5",
                "Accept-Encoding": "gzip, deflate",
            },
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        )
        self.logger.debug(f"NSE session created (primed={self._primed})")

    async def close(self) -> None:
        """
        Persist cookies and close the HTTP session.

        A cookie file that cannot be written is logged; the session is
        closed regardless.
        """
        if self.session is None:
            return

        try:
            self.save_cookies()
        except OSError as e:
            self.logger.error(f"Failed to save cookies to {self.cookie_path}: {e}")
        finally:
            await self.session.close()
            self.session = None
        self.logger.debug("NSE session closed")

    @property
    def primed(self) -> bool:
        return self._primed

    # ============================================
    # Cookie Persistence
    # ============================================

    def load_cookies(self) -> bool:
        """
        Load the persisted cookie jar (best-effort).

        Returns:
            True if at least one cookie was loaded
        """
        if self.cookie_jar is None or not self.cookie_path.is_file():
            return False

        try:
            self.cookie_jar.load(self.cookie_path)
            count = len(self.cookie_jar)
        except Exception as e:
            self.logger.warning(f"Ignoring unreadable cookie file {self.cookie_path}: {e}")
            self.cookie_jar = aiohttp.CookieJar()
            return False

        self.logger.info(f"Loaded {count} cookie(s) from {self.cookie_path}")
        return count > 0

    def save_cookies(self) -> None:
        """Write the cookie jar to the download directory."""
        if self.cookie_jar is None:
            return

        self.cookie_path.parent.mkdir(parents=True, exist_ok=True)
        self.cookie_jar.save(self.cookie_path)
        self.logger.debug(f"Saved {len(self.cookie_jar)} cookie(s) to {self.cookie_path}")

    # ============================================
    # Priming
    # ============================================

    async def prime(self) -> None:
        """
        Visit the priming page to obtain fresh anti-bot cookies.

        A non-2xx priming response is logged but not raised: the replayed
        request reports the real failure.
        """
        self.logger.info(f"Priming NSE session via {self.prime_url}")
        await self.throttle.check(classify(self.prime_url))

        status, _ = await self._fetch(self.prime_url, None)
        if not 200 <= status < 300:
            self.logger.warning(f"Priming page returned HTTP {status}")

        self._primed = True

    # ============================================
    # Public Request Primitives
    # ============================================

    async def request_json(self, url: str, query: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET a URL and parse the body as JSON, whatever its content type.

        Args:
            url: Absolute endpoint URL
            query: Flat query parameters

        Returns:
            Parsed JSON body

        Raises:
            HttpError: On a non-2xx response (after one re-prime for 401)
        """
        body = await self._send(url, query)
        return json.loads(body.decode("utf-8"))

    async def request_text(self, url: str, query: Optional[Dict[str, Any]] = None) -> str:
        """
        GET a URL and return the raw body as text.

        Raises:
            HttpError: On a non-2xx response
        """
        body = await self._send(url, query)
        return body.decode("utf-8", errors="replace")

    async def download_to_file(self, url: str, directory: Optional[Path] = None) -> Path:
        """
        Stream a URL to `directory/<file name from URL>`.

        Args:
            url: Absolute file URL
            directory: Target folder (defaults to download_dir)

        Returns:
            Absolute path of the written file

        Raises:
            HttpError: On a non-2xx response
            DownloadError: If the file is missing or empty afterwards. The
                partial file is left in place for the caller to remove.
        """
        folder = Path(directory).expanduser().resolve() if directory else self.download_dir
        folder.mkdir(parents=True, exist_ok=True)

        name = Path(unquote(urlsplit(url).path)).name or "download"
        dest = folder / name

        await self._send(url, None, dest=dest)

        if not dest.is_file() or dest.stat().st_size == 0:
            raise DownloadError(dest)

        self.logger.info(f"Downloaded {url} -> {dest}")
        return dest

    # ============================================
    # Internals
    # ============================================

    async def _send(
        self,
        url: str,
        query: Optional[Dict[str, Any]] = None,
        dest: Optional[Path] = None
    ) -> bytes:
        """
        Throttled GET with priming and the 401 retry policy applied.
        """
        if self.session is None:
            raise RuntimeError("Session not started. Use 'async with' or call start().")

        if not self._primed:
            async with self._prime_lock:
                if not self._primed:
                    await self.prime()

        params = self._serialize_query(query)
        policy = PrimingRetryPolicy()

        while True:
            await self.throttle.check(classify(url))
            status, body = await self._fetch(url, params, dest)

            decision = policy.on_status(status)

            if decision is RetryDecision.PRIME_AND_RETRY:
                self.logger.warning(f"HTTP 401 on {url}, re-priming session and retrying once")
                await self.prime()
                continue

            if decision is RetryDecision.FAIL or not 200 <= status < 300:
                self.logger.error(f"HTTP {status} on {url}")
                raise HttpError(status, url)

            return body

    async def _fetch(
        self,
        url: str,
        params: Optional[Dict[str, str]],
        dest: Optional[Path] = None
    ) -> Tuple[int, bytes]:
        """
        Issue one GET. Streams a 2xx body to `dest` when given.

        Returns:
            (status, body); body is empty when streamed to a file
        """
        log_api_request(url, params)
        started = time.monotonic()

        async with self.session.get(
            url,
            params=params or None,
            headers={"Referer": self._referer_for(url, params)}
        ) as resp:
            log_api_response(url, resp.status, time.monotonic() - started)

            if dest is not None and 200 <= resp.status < 300:
                with open(dest, "wb") as fh:
                    async for chunk in resp.content.iter_chunked(CHUNK_SIZE):
                        fh.write(chunk)
                return resp.status, b""

            return resp.status, await resp.read()

    def _referer_for(self, url: str, params: Optional[Dict[str, str]]) -> str:
        """
        Page-aware Referer: the page a browser would have been on for this call.
        """
        path = urlsplit(url).path.lower()
        symbol = (params or {}).get("symbol")

        if "option-chain" in path:
            return self.prime_url
        if symbol and ("quote" in path or "meta-info" in path):
            return f"{self.home_url}/get-quotes/equity?symbol={symbol}"
        return f"{self.home_url}/"

    @staticmethod
    def _serialize_query(query: Optional[Dict[str, Any]]) -> Dict[str, str]:
        """
        Flatten query values to strings; None values are dropped.
        """
        if not query:
            return {}

        params = {}
        for key, value in query.items():
            if value is None:
                continue
            if isinstance(value, bool):
                params[key] = "true" if value else "false"
            else:
                params[key] = str(value)
        return params
