#!/usr/bin/env python3
"""End-to-end smoke checks: account, API provisioning and the generated endpoint."""

from __future__ import annotations

import argparse
import random
import string
import time
from dataclasses import dataclass
from typing import Any

import httpx


SMOKE_SETUP = {
    "name": "Smoke Echo",
    "description": "Returns the submitted text in a JSON object.",
    "systemPrompt": 'Return a JSON object {"text": <the input text>} and nothing else.',
    "inputSchema": {
        "type": "object",
        "properties": {"text": {"type": "string", "description": "Any text"}},
        "required": ["text"],
    },
    "outputSchema": {"type": "object", "properties": {"text": {"type": "string"}}},
    "suggestedEndpoint": "smoke-echo",
}


@dataclass
class SmokeContext:
    base_url: str
    api_prefix: str
    gateway_prefix: str
    timeout_seconds: float
    retries: int
    retry_delay_seconds: float


def _random_suffix(length: int = 6) -> str:
    chars = string.ascii_lowercase + string.digits
    return "".join(random.choice(chars) for _ in range(length))


def _api_url(ctx: SmokeContext, path: str) -> str:
    return f"{ctx.base_url}{ctx.api_prefix}{path}"


def _gateway_url(ctx: SmokeContext, slug: str) -> str:
    return f"{ctx.base_url}{ctx.gateway_prefix}/{slug}"


def _step(name: str) -> None:
    print(f"\n==> {name}")


def _request(
    client: httpx.Client,
    ctx: SmokeContext,
    method: str,
    url: str,
    *,
    step_name: str,
    expected_status: int = 200,
    **kwargs: Any,
) -> httpx.Response:
    for attempt in range(ctx.retries + 1):
        try:
            resp = client.request(method, url, **kwargs)
        except (httpx.ConnectTimeout, httpx.ReadTimeout, httpx.ConnectError, httpx.RemoteProtocolError) as exc:
            if attempt >= ctx.retries:
                raise RuntimeError(f"{step_name} request failed: {exc}") from exc
            print(f"{step_name}: transient error ({exc}), retrying ({attempt + 1}/{ctx.retries})...")
            time.sleep(ctx.retry_delay_seconds)
            continue
        if resp.status_code in {502, 503, 504} and attempt < ctx.retries:
            print(f"{step_name}: transient HTTP {resp.status_code}, retrying ({attempt + 1}/{ctx.retries})...")
            time.sleep(ctx.retry_delay_seconds)
            continue
        if resp.status_code != expected_status:
            raise RuntimeError(
                f"{step_name} failed: expected HTTP {expected_status}, got {resp.status_code}. Body: {resp.text}"
            )
        return resp
    raise RuntimeError(f"{step_name} failed unexpectedly.")


def run_smoke(ctx: SmokeContext, *, check_generate_setup: bool, keep_api: bool) -> None:
    run_id = f"{int(time.time())}-{_random_suffix()}"
    email = f"smoke+{run_id}@example.com"
    password = f"SmokePass{_random_suffix(4)}!123"

    with httpx.Client(timeout=ctx.timeout_seconds) as client:
        _step("Health checks")
        _request(client, ctx, "GET", f"{ctx.base_url}/healthz", step_name="GET /healthz")
        _request(client, ctx, "GET", f"{ctx.base_url}/readyz", step_name="GET /readyz")

        _step("Register and login")
        _request(
            client,
            ctx,
            "POST",
            _api_url(ctx, "/auth/register"),
            step_name="POST /auth/register",
            expected_status=201,
            json={"email": email, "full_name": "Smoke User", "password": password},
        )
        login = _request(
            client,
            ctx,
            "POST",
            _api_url(ctx, "/auth/login"),
            step_name="POST /auth/login",
            json={"email": email, "password": password},
        ).json()
        auth_headers = {"Authorization": f"Bearer {login['access_token']}"}
        print(f"Registered and logged in as {email}")

        if check_generate_setup:
            _step("Generate setup")
            setup = _request(
                client,
                ctx,
                "POST",
                _api_url(ctx, "/generate-setup"),
                step_name="POST /generate-setup",
                headers=auth_headers,
                json={"prompt": "An API that counts the words in a piece of text"},
            ).json()["setup"]
            print(f"Proposed endpoint: {setup.get('suggestedEndpoint')}")

        _step("Create API")
        created = _request(
            client,
            ctx,
            "POST",
            _api_url(ctx, "/apis"),
            step_name="POST /apis",
            expected_status=201,
            headers=auth_headers,
            json={"prompt": "Echo the text back", "setup": SMOKE_SETUP, "config": {"temperature": 0.1}},
        ).json()
        slug = created["slug"]
        api_key = created["api_key"]
        print(f"Created {created['endpoint']}")

        _step("Generated endpoint")
        info = _request(client, ctx, "GET", _gateway_url(ctx, slug), step_name=f"GET {slug}").json()
        print(f"Info status: {info.get('status')}")
        _request(
            client,
            ctx,
            "POST",
            _gateway_url(ctx, slug),
            step_name=f"POST {slug} without key",
            expected_status=401,
            json={"text": "hi"},
        )
        _request(
            client,
            ctx,
            "POST",
            _gateway_url(ctx, slug),
            step_name=f"POST {slug} missing field",
            expected_status=400,
            headers={"x-api-key": api_key},
            json={},
        )
        resp = _request(
            client,
            ctx,
            "POST",
            _gateway_url(ctx, slug),
            step_name=f"POST {slug}",
            headers={"Authorization": f"Bearer {api_key}"},
            json={"text": "hello smoke"},
        )
        print(f"Response: {resp.json()} request_id={resp.headers.get('X-Request-Id')} latency={resp.headers.get('X-Latency-Ms')}ms")

        _step("Usage")
        usage = _request(client, ctx, "GET", _api_url(ctx, "/usage"), step_name="GET /usage", headers=auth_headers).json()
        print(f"Total requests: {usage.get('total_requests')} success rate: {usage.get('success_rate')}%")

        if not keep_api:
            _step("Cleanup")
            _request(
                client,
                ctx,
                "DELETE",
                _api_url(ctx, f"/apis/{created['id']}"),
                step_name="DELETE /apis/{id}",
                headers=auth_headers,
            )
            print("Deleted smoke API")

    print("\nSUCCESS: smoke checks passed.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run end-to-end smoke checks.")
    parser.add_argument("--base-url", required=True, help="Backend base URL, e.g. http://localhost:8000")
    parser.add_argument("--api-prefix", default="/api", help="Dashboard API prefix (default: /api)")
    parser.add_argument("--gateway-prefix", default="/api/v1", help="Generated endpoint prefix (default: /api/v1)")
    parser.add_argument("--timeout", type=float, default=60.0, help="HTTP timeout in seconds")
    parser.add_argument("--retries", type=int, default=3, help="Retries for transient network/5xx errors")
    parser.add_argument("--retry-delay", type=float, default=5.0, help="Delay between retries in seconds")
    parser.add_argument("--check-generate-setup", action="store_true", help="Also call the setup generator (uses the LLM)")
    parser.add_argument("--keep-api", action="store_true", help="Do not delete the created API")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    ctx = SmokeContext(
        base_url=args.base_url.rstrip("/"),
        api_prefix="/" + args.api_prefix.strip("/"),
        gateway_prefix="/" + args.gateway_prefix.strip("/"),
        timeout_seconds=args.timeout,
        retries=max(0, args.retries),
        retry_delay_seconds=max(0.0, args.retry_delay),
    )
    run_smoke(ctx, check_generate_setup=args.check_generate_setup, keep_api=args.keep_api)


if __name__ == "__main__":
    main()
