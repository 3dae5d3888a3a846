import random
import logging

from dataclasses import dataclass, field
from urllib.parse import urlsplit, urlunsplit
from .models import SecurityOptions, TestConfig


logger = logging.getLogger(__name__)

# ────────────────────────────────
# Traffic Profiles
# ────────────────────────────────

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/14.1.1 Safari/605.1.15",
    "Mozilla/5.0 (Linux; Android 10; SM-G981B) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/80.0.3987.162 Mobile Safari/537.36",
    "PostmanRuntime/7.26.8",
]

SENSITIVE_PATHS = [
    "/admin",
    "/login",
    "/backup",
    "/config",
    "/.env",
    "/api/v1/users",
    "/server-status",
]

MALFORMED_JSON_BODY = "{ 'malformed': json "

ERROR_INDUCING_PROBABILITY = 0.2
ENDPOINT_SCANNING_PROBABILITY = 0.3
BRUTE_FORCE_MAX_ATTEMPT = 10000

BODYLESS_METHODS = ("GET", "HEAD")


@dataclass
class OutgoingRequest:
    method: str
    headers: dict[str, str] = field(default_factory=dict)
    body: str | None = None

    @classmethod
    def from_config(cls, config: TestConfig) -> "OutgoingRequest":
        body = None
        if config.http_method not in BODYLESS_METHODS and config.body:
            body = config.body
        return cls(method=config.http_method, headers=dict(config.headers), body=body)

    @property
    def user_agent(self) -> str | None:
        for k, v in self.headers.items():
            if k.lower() == "user-agent":
                return v
        return None


# ────────────────────────────────
# Mutations
# ────────────────────────────────


def apply_security_behaviors(
    request: OutgoingRequest,
    url: str,
    options: SecurityOptions | None,
    rng: random.Random | None = None,
) -> str:
    """Mutate `request` in place and return the URL to hit."""
    if options is None:
        return url
    rng = rng or random

    if options.random_headers:
        _set_header(request.headers, "User-Agent", rng.choice(USER_AGENTS))

    if options.error_inducing and rng.random() < ERROR_INDUCING_PROBABILITY:
        request.body = MALFORMED_JSON_BODY
        _set_header(request.headers, "Content-Type", "application/json")

    if options.endpoint_scanning and rng.random() < ENDPOINT_SCANNING_PROBABILITY:
        url = replace_path(url, rng.choice(SENSITIVE_PATHS))

    return url


def apply_brute_force(
    url: str, options: SecurityOptions | None, rng: random.Random | None = None
) -> str:
    # Scanning already rewrites the URL; the two never stack.
    if options is None or not options.brute_force or options.endpoint_scanning:
        return url
    rng = rng or random
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}attempt={rng.randrange(BRUTE_FORCE_MAX_ATTEMPT)}"


def replace_path(url: str, path: str) -> str:
    try:
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"not an absolute URL: {url}")
        return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))
    except ValueError as e:
        logger.debug(f"URL parse failed, appending path instead: {e}")
        return url + path


def _set_header(headers: dict[str, str], name: str, value: str) -> None:
    for k in [k for k in headers if k.lower() == name.lower()]:
        del headers[k]
    headers[name] = value
