#!/usr/bin/env python3
"""
Smoke test for EnvShare deployments.

Deploy guardrail: fast, deterministic, and every failure names the step and
the HTTP status it saw.

Flow:
1. Liveness (/health)
2. Health check with expiry sweep (/v1/_healthcheck)
3. Create a single-read secret (POST /v1/secret)
4. Reveal it and compare the plaintext (GET /v1/secret/<token>)
5. Reveal again and expect 404
6. Reveal a malformed token and expect 400

Usage:
    ./scripts/smoke-test.py https://staging.example.com --api-key KEY
    ./scripts/smoke-test.py https://staging.example.com --health-only
"""

import argparse
import json
import random
import secrets
import sys
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_RETRIES = 2
DEFAULT_RETRY_BACKOFF_SECONDS = 0.5
MAX_BACKOFF_SECONDS = 4.0
BODY_PREVIEW_CHARS = 200


class StepFailed(RuntimeError):
    pass


def log(msg: str) -> None:
    """Print timestamped log message."""
    print(f"[{datetime.now().strftime('%H:%M:%S')}] {msg}", flush=True)


def _is_retryable_status(status_code: int) -> bool:
    return status_code in {408, 429, 502, 503, 504}


@dataclass
class HttpClient:
    base_url: str
    api_key: str | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retries: int = DEFAULT_RETRIES
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS

    def request(
        self,
        method: str,
        path: str,
        *,
        data: dict[str, Any] | None = None,
        authorized: bool = True,
    ) -> tuple[int, Any]:
        headers = {"Content-Type": "application/json"}
        if authorized and self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        body = json.dumps(data).encode() if data is not None else None
        url = f"{self.base_url}{path}"

        max_attempts = max(1, self.retries + 1)
        for attempt in range(1, max_attempts + 1):
            request = Request(url, data=body, headers=headers, method=method)
            try:
                with urlopen(request, timeout=self.timeout_seconds) as response:
                    return response.getcode(), _parse_body(response.read())
            except HTTPError as e:
                if attempt < max_attempts and _is_retryable_status(e.code):
                    self._sleep_backoff(attempt)
                    continue
                return e.code, _parse_body(e.read() if e.fp else b"")
            except (URLError, TimeoutError) as e:
                if attempt < max_attempts:
                    self._sleep_backoff(attempt)
                    continue
                raise StepFailed(f"Network error after {attempt} attempts: {e}") from e

        raise StepFailed(f"No response from {method} {path}")

    def _sleep_backoff(self, attempt: int) -> None:
        base = self.retry_backoff_seconds * (2 ** (attempt - 1))
        jitter = random.random() * self.retry_backoff_seconds
        time.sleep(min(MAX_BACKOFF_SECONDS, base + jitter))


def _parse_body(raw: bytes) -> Any:
    text = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text[:BODY_PREVIEW_CHARS]


def expect(step: str, status: int, expected: int, body: Any) -> None:
    if status != expected:
        raise StepFailed(f"{step}: expected HTTP {expected}, got {status} ({body!r})")
    log(f"{step}: OK ({status})")


def run_health(client: HttpClient) -> None:
    status, body = client.request("GET", "/health", authorized=False)
    expect("liveness", status, 200, body)

    status, body = client.request("GET", "/v1/_healthcheck", authorized=False)
    expect("healthcheck", status, 200, body)
    log(f"healthcheck: swept {body.get('swept')} expired secret(s)")


def run_secret_flow(client: HttpClient) -> None:
    plaintext = f"smoke-{secrets.token_hex(8)}"

    status, body = client.request(
        "POST", "/v1/secret", data={"content": plaintext, "max_reads": 1, "ttl": 300}
    )
    expect("create", status, 201, body)
    token = body["token"]

    status, body = client.request("GET", f"/v1/secret/{token}")
    expect("reveal", status, 200, body)
    if body.get("content") != plaintext:
        raise StepFailed("reveal: content does not match what was stored")

    status, body = client.request("GET", f"/v1/secret/{token}")
    expect("reveal after last read", status, 404, body)

    status, body = client.request("GET", "/v1/secret/not-a-token")
    expect("malformed token", status, 400, body)


def main() -> int:
    parser = argparse.ArgumentParser(description="EnvShare deployment smoke test")
    parser.add_argument("base_url", help="e.g. https://staging.example.com")
    parser.add_argument("--api-key", help="bearer key for the secrets API")
    parser.add_argument("--health-only", action="store_true")
    args = parser.parse_args()

    if not args.health_only and not args.api_key:
        parser.error("--api-key is required unless --health-only is set")

    client = HttpClient(base_url=args.base_url.rstrip("/"), api_key=args.api_key)

    try:
        run_health(client)
        if not args.health_only:
            run_secret_flow(client)
    except StepFailed as e:
        log(f"FAILED: {e}")
        return 1

    log("Smoke test passed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
