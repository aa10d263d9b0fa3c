"""Rate-limited page fetching from LeagueAppLive sites."""
import logging
import random
import time
from typing import Callable, Optional
from urllib.parse import urlencode

import requests

log = logging.getLogger("leaguesync.fetch")

BASE_URL = "https://live.leagueapplive.com"

HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-GB,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}

RATE_LIMIT_BACKOFF = (10.0, 20.0, 40.0)
RATE_LIMIT_CEILING = 60.0
SERVER_ERROR_BACKOFF = (5.0, 10.0, 20.0)
SERVER_ERROR_CEILING = 30.0
LINEAR_BACKOFF_STEP = 5.0
JITTER_RANGE = (0.8, 1.2)

SLOW_RESPONSE_SECONDS = 5.0
ADAPTIVE_GROWTH = 1.3
ADAPTIVE_DECAY = 0.95
ADAPTIVE_CEILING = 3.0


class FetchError(Exception):
    def __init__(self, message: str, url: str):
        super().__init__(message)
        self.url = url


class HttpStatusError(FetchError):
    def __init__(self, status: int, url: str):
        super().__init__(f"HTTP {status} for {url}", url)
        self.status = status


class FetchTimeout(FetchError):
    pass


class NetworkError(FetchError):
    pass


def backoff_delay(schedule, ceiling: float, attempt: int, rng=random) -> float:
    """Delay for the given 1-based attempt, jittered by +/-20%."""
    base = schedule[attempt - 1] if attempt <= len(schedule) else ceiling
    return base * rng.uniform(*JITTER_RANGE)


class FetchClient:
    """
    Sequential HTTP client for one league run.

    Every request after the first is preceded by a randomized spacing delay.
    429 and 5xx responses are retried on their own backoff schedules; timeouts
    and connection failures back off linearly. Any other non-2xx status fails
    at once.
    """

    def __init__(
        self,
        site: str,
        *,
        base_url: str = BASE_URL,
        base_delay: float = 2.5,
        timeout: float = 30.0,
        max_retries: int = 3,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        rng=None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.site = site
        self.base_url = base_url.rstrip("/")
        self.base_delay = base_delay
        self.timeout = timeout
        self.max_retries = max_retries
        self.session = session or requests.Session()
        self._sleep = sleep
        self._rng = rng or random
        self._clock = clock
        self.request_count = 0
        self.adaptive_multiplier = 1.0

    @property
    def default_referer(self) -> str:
        return f"{self.base_url}/?sitename={self.site}"

    def reset(self) -> None:
        self.request_count = 0
        self.adaptive_multiplier = 1.0

    def build_url(self, page: str, **params: str) -> str:
        query = urlencode({"sitename": self.site, **params})
        return f"{self.base_url}/{page}?{query}"

    def spacing_delay(self) -> float:
        return self._rng.uniform(self.base_delay, 2 * self.base_delay) * self.adaptive_multiplier

    def _adapt(self, elapsed: float) -> None:
        if elapsed > SLOW_RESPONSE_SECONDS:
            self.adaptive_multiplier = min(self.adaptive_multiplier * ADAPTIVE_GROWTH, ADAPTIVE_CEILING)
            log.warning(
                "Slow response (%.1fs), increasing delay multiplier to %.1fx",
                elapsed,
                self.adaptive_multiplier,
            )
        elif self.adaptive_multiplier > 1.0:
            self.adaptive_multiplier = max(self.adaptive_multiplier * ADAPTIVE_DECAY, 1.0)

    def get(self, url: str, referer: Optional[str] = None) -> str:
        self.request_count += 1
        if self.request_count > 1:
            self._sleep(self.spacing_delay())

        full_url = url if url.startswith("http") else f"{self.base_url}/{url.lstrip('/')}"
        headers = {**HEADERS, "Referer": referer or self.default_referer}
        log.info("[%s] %s", self.request_count, full_url[len(self.base_url):] or full_url)

        attempt = 0
        while True:
            attempt += 1
            started = self._clock()
            try:
                resp = self.session.get(full_url, headers=headers, timeout=self.timeout)
            except requests.Timeout:
                if attempt > self.max_retries:
                    raise FetchTimeout(
                        f"Request timed out after {attempt} attempts: {full_url}", full_url
                    )
                log.warning(
                    "Request timeout after %ss (attempt %s/%s)",
                    self.timeout,
                    attempt,
                    self.max_retries + 1,
                )
                self._sleep(LINEAR_BACKOFF_STEP * attempt)
                continue
            except requests.ConnectionError as exc:
                if attempt > self.max_retries:
                    raise NetworkError(
                        f"Request failed after {attempt} attempts: {full_url}: {exc}", full_url
                    ) from exc
                log.warning("Request failed: %s (attempt %s/%s)", exc, attempt, self.max_retries + 1)
                self._sleep(LINEAR_BACKOFF_STEP * attempt)
                continue
            except requests.RequestException as exc:
                raise NetworkError(f"Request failed: {full_url}: {exc}", full_url) from exc

            self._adapt(self._clock() - started)
            status = resp.status_code

            if status == 429 or status >= 500:
                if attempt > self.max_retries:
                    raise HttpStatusError(status, full_url)
                if status == 429:
                    delay = backoff_delay(RATE_LIMIT_BACKOFF, RATE_LIMIT_CEILING, attempt, self._rng)
                    log.warning(
                        "Rate limited (429), backing off %ss (attempt %s/%s)",
                        round(delay),
                        attempt,
                        self.max_retries + 1,
                    )
                else:
                    delay = backoff_delay(SERVER_ERROR_BACKOFF, SERVER_ERROR_CEILING, attempt, self._rng)
                    log.warning(
                        "Server error (%s), backing off %ss (attempt %s/%s)",
                        status,
                        round(delay),
                        attempt,
                        self.max_retries + 1,
                    )
                self._sleep(delay)
                continue

            if not 200 <= status < 300:
                raise HttpStatusError(status, full_url)
            return resp.text


class BatchThrottle:
    """Long pause after every `size` detail-page requests."""

    def __init__(
        self,
        size: int = 10,
        pause_min: float = 15.0,
        pause_max: float = 30.0,
        *,
        sleep: Callable[[float], None] = time.sleep,
        rng=None,
    ):
        self.size = max(size, 1)
        self.pause_min = pause_min
        self.pause_max = pause_max
        self._sleep = sleep
        self._rng = rng or random
        self.count = 0

    def before_request(self) -> float:
        pause = 0.0
        if self.count > 0 and self.count % self.size == 0:
            pause = self._rng.uniform(self.pause_min, self.pause_max)
            log.info("Batch pause: %ss before next batch...", round(pause))
            self._sleep(pause)
        self.count += 1
        return pause
