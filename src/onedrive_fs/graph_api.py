# -*- coding: utf-8 -*-
"""
Microsoft Graph API transport for OneDrive filesystem operations.

This module provides the HTTP request capability every component is built on:
authentication headers, per-request timeouts, request monitoring and the
retry policy for metadata, listing and single-request operations.

Upload chunks and single-shot uploads bypass the transport retries
(max_retries=0); the upload engine applies its own chunk retry policy.
"""

import threading
import time

import requests

from .auth import acquire_token, build_auth_headers
from .monitoring import RequestMonitor
from .thread_utils import thread_safe_print
from .utils import is_debug_enabled, is_debug_metadata_enabled


def is_success(response):
    """True for any 2xx response"""
    return 200 <= response.status_code < 300


def error_detail(response):
    """
    Extract a short error description from a Graph API error response.

    Args:
        response (requests.Response): Failed response

    Returns:
        str: 'code: message' from the Graph error body, or the start of the raw body
    """
    try:
        error = response.json().get('error', {})
    except (ValueError, AttributeError):
        error = None
    if isinstance(error, dict) and (error.get('code') or error.get('message')):
        return f"{error.get('code', 'error')}: {error.get('message', '')}".strip()
    return (response.text or "")[:200]


class GraphClient:
    """
    Thin requests-based client for the Graph API.

    Responses are returned as requests.Response objects; their headers are
    case-insensitive, which the upload engine relies on for Retry-After.
    """

    def __init__(self, config, session=None, monitor=None, sleep=time.sleep):
        """
        Args:
            config (Config): Adapter configuration
            session (requests.Session): Optional pre-built session (connection pooling, proxies)
            monitor (RequestMonitor): Optional monitor, one is created per client by default
            sleep (callable): Sleep function used between retries
        """
        self.config = config
        self.session = session or requests.Session()
        self.monitor = monitor or RequestMonitor()
        self.sleep = sleep
        self._token = None
        self._token_lock = threading.Lock()

    def auth_headers(self):
        """
        Build the Authorization header.

        Uses config.access_token when set, otherwise acquires a client
        credentials token with MSAL on first use.

        Returns:
            dict: Authorization header
        """
        if self.config.access_token:
            return {'Authorization': f"Bearer {self.config.access_token}"}

        with self._token_lock:
            if self._token is None:
                self._token = acquire_token(
                    self.config.tenant_id, self.config.client_id, self.config.client_secret,
                    self.config.login_endpoint, self.config.graph_endpoint
                )
            return build_auth_headers(self._token)

    def request(self, method, url, headers=None, json_data=None, data=None, params=None,
                authenticate=True, max_retries=None, operation=None, stream=False):
        """
        Make a Graph API request with retry handling for transient errors.

        Retry Logic:
            - 429 (Rate Limit): Waits for Retry-After header duration (default 60s)
            - 5xx (Server Error): Exponential backoff (2s, 3s, 5s, ...)
            - Timeouts / connection errors: Exponential backoff, re-raised when exhausted
            - SSL, proxy and redirect-loop errors: No retry
            - 4xx (Client Error): No retry

        Args:
            method (str): HTTP method ('GET', 'POST', 'PATCH', 'PUT', 'DELETE')
            url (str): Absolute Graph API URL
            headers (dict): Extra request headers
            json_data (dict): JSON body (mutually exclusive with data)
            data (bytes): Binary body (mutually exclusive with json_data)
            params (dict): Query string parameters
            authenticate (bool): Add the Authorization header (False for pre-authenticated upload URLs)
            max_retries (int): Retry budget, defaults to config.max_retry; 0 disables retries
            operation (str): Operation type for the request monitor
            stream (bool): Stream the response body

        Returns:
            requests.Response: The last HTTP response; status handling is left to the caller

        Raises:
            requests.exceptions.RequestException: If the request could not be sent
        """
        if max_retries is None:
            max_retries = self.config.max_retry

        request_headers = {}
        if authenticate:
            request_headers.update(self.auth_headers())
        if headers:
            request_headers.update(headers)

        debug_metadata = is_debug_metadata_enabled()

        for attempt in range(max_retries + 1):
            if attempt > 0:
                self.monitor.record_retry()
            self.monitor.record_request(method, url, operation=operation)

            if is_debug_enabled():
                thread_safe_print(f"[DEBUG] {method.upper()} {url}")

            try:
                response = self.session.request(
                    method.upper(), url,
                    headers=request_headers,
                    json=json_data,
                    data=data,
                    params=params,
                    timeout=self.config.request_timeout,
                    stream=stream,
                )
            except (requests.exceptions.SSLError,
                    requests.exceptions.ProxyError,
                    requests.exceptions.TooManyRedirects) as e:
                # Configuration problems, not transient
                thread_safe_print(f"[!] {type(e).__name__} calling Graph API: {str(e)[:200]}")
                raise
            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
                if attempt < max_retries:
                    wait_seconds = (2 ** attempt) + 1
                    thread_safe_print(f"[!] Network error ({str(e)[:100]}). Retrying in {wait_seconds} seconds... "
                                      f"({attempt + 1}/{max_retries})")
                    self.sleep(wait_seconds)
                    continue
                thread_safe_print(f"[!] Network errors exhausted all retries: {str(e)[:200]}")
                raise

            self.monitor.analyze_response_headers(response)

            if response.status_code == 429 and attempt < max_retries:
                retry_after = response.headers.get('Retry-After', '60')
                try:
                    wait_seconds = int(retry_after)
                except ValueError:
                    wait_seconds = 60  # Default to 60 seconds if header is malformed
                if is_debug_enabled():
                    thread_safe_print(f"[!] Rate limited (429). Waiting {wait_seconds} seconds before retry "
                                      f"{attempt + 1}/{max_retries}...")
                self.sleep(wait_seconds)
                continue

            if 500 <= response.status_code < 600 and attempt < max_retries:
                wait_seconds = (2 ** attempt) + 1
                if is_debug_enabled():
                    thread_safe_print(f"[!] Server error ({response.status_code}). Retrying in {wait_seconds} seconds... "
                                      f"({attempt + 1}/{max_retries})")
                if debug_metadata:
                    thread_safe_print(f"[DEBUG] Server error response: {response.text[:300]}")
                self.sleep(wait_seconds)
                continue

            if debug_metadata and response.status_code >= 400:
                thread_safe_print(f"[DEBUG] {response.status_code} response: {response.text[:500]}")

            return response

        # Loop always returns or raises on the final attempt
        raise RuntimeError("Unexpected exit from GraphClient.request retry loop")

    def close(self):
        self.session.close()
