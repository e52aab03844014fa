# -*- coding: utf-8 -*-
"""
Request monitoring and statistics tracking for OneDrive operations.

This module provides a per-client monitor of Graph API requests: request
counts by method and operation type, throttling signals and retries.
"""

from .thread_utils import ThreadSafeCounter, thread_safe_print
from .utils import is_debug_metadata_enabled


class RequestMonitor:
    """
    Counters for the requests made by one GraphClient.

    Graph reports how close the app is to its throttling limit in the
    x-ms-throttle-limit-percentage header (a ratio, 1.0 = limit reached).
    The header is only sent once 80% of the limit is used.
    """

    METHODS = ('GET', 'POST', 'PUT', 'PATCH', 'DELETE')

    OPERATIONS = (
        'chunk_upload',      # PUT to an upload session URL
        'session_create',    # POST createUploadSession
        'file_upload',       # PUT to /content
        'download',          # GET /content
        'listing',           # GET /children
        'folder_create',     # POST /children
        'item_copy',         # POST /copy
        'item_move',         # PATCH item
        'item_delete',       # DELETE item
        'metadata_get',      # GET item
        'other',
    )

    def __init__(self):
        """Initialize request monitoring metrics"""
        self.throttle_threshold = 0.8
        self.total_requests = ThreadSafeCounter()
        self.throttled_requests = ThreadSafeCounter()
        self.retries = ThreadSafeCounter()
        self.bytes_uploaded = ThreadSafeCounter()
        self.alerts_triggered = ThreadSafeCounter()
        self.request_types = {method: ThreadSafeCounter() for method in self.METHODS}
        self.operations = {op: ThreadSafeCounter() for op in self.OPERATIONS}
        self.max_throttle_percentage = 0.0

    def record_request(self, method, url, operation=None):
        """
        Count an outgoing request.

        Args:
            method (str): HTTP method
            url (str): Request URL, used to categorize the operation
            operation (str): Explicit operation type, overrides URL detection
        """
        self.total_requests.increment()
        method = method.upper()
        if method in self.request_types:
            self.request_types[method].increment()
        op = operation or self.categorize_operation(url, method)
        self.operations.get(op, self.operations['other']).increment()

    def record_retry(self):
        self.retries.increment()

    def record_upload_bytes(self, count):
        self.bytes_uploaded.increment(count)

    def analyze_response_headers(self, response):
        """
        Record throttling signals carried by a response.

        Args:
            response (requests.Response): Any Graph response

        Returns:
            dict: throttle_percentage, resource_unit (None when absent) and is_throttled
        """
        is_throttled = response.status_code == 429
        if is_throttled:
            self.throttled_requests.increment()

        usage = _parse_header(response, 'x-ms-throttle-limit-percentage', float)
        resource_unit = _parse_header(response, 'x-ms-resource-unit', int)

        if usage is not None:
            self.max_throttle_percentage = max(self.max_throttle_percentage, usage)
            if usage >= 1.0:
                thread_safe_print(f"[!] THROTTLING DETECTED: {usage:.1%} of limit used")
            elif usage >= self.throttle_threshold:
                self.alerts_triggered.increment()
                thread_safe_print(f"[ ] Rate limit warning: {usage:.1%} of limit used")

        if resource_unit is not None and is_debug_metadata_enabled():
            thread_safe_print(f"[=] Resource units consumed: {resource_unit}")

        return {
            'throttle_percentage': usage,
            'resource_unit': resource_unit,
            'is_throttled': is_throttled
        }

    @staticmethod
    def categorize_operation(url, method):
        """
        Operation type of a request, inferred from its URL and method.

        Args:
            url (str): Request URL
            method (str): HTTP method

        Returns:
            str: One of RequestMonitor.OPERATIONS
        """
        url_lower = (url or "").lower()
        method = method.upper()

        if '/createuploadsession' in url_lower:
            return 'session_create'
        if url_lower.endswith('/content') or '/content?' in url_lower:
            return 'file_upload' if method == 'PUT' else 'download'
        if '/children' in url_lower:
            return 'folder_create' if method == 'POST' else 'listing'
        if method == 'POST' and url_lower.endswith('/copy'):
            return 'item_copy'
        if method == 'PATCH':
            return 'item_move'
        if method == 'DELETE':
            return 'item_delete'
        if method == 'GET':
            return 'metadata_get'
        return 'other'

    def should_slow_down(self):
        """
        True once any response reported 90% or more of the throttling limit used.
        """
        return self.max_throttle_percentage >= 0.9

    def get_metrics_summary(self):
        """
        Get request metrics.

        Returns:
            dict: Summary of all request metrics
        """
        total = self.total_requests.value()
        throttled = self.throttled_requests.value()
        return {
            'total_requests': total,
            'throttled_requests': throttled,
            'throttle_rate': throttled / max(total, 1),
            'retries': self.retries.value(),
            'bytes_uploaded': self.bytes_uploaded.value(),
            'max_throttle_percentage': self.max_throttle_percentage,
            'alerts_triggered': self.alerts_triggered.value(),
            'request_types': {k: v.value() for k, v in self.request_types.items()},
            'operations': {k: v.value() for k, v in self.operations.items()},
        }


def _parse_header(response, name, convert):
    """Numeric header value, or None when absent or not a number."""
    value = response.headers.get(name)
    if not value:
        return None
    try:
        return convert(value)
    except ValueError:
        if is_debug_metadata_enabled():
            thread_safe_print(f"[DEBUG] Ignoring malformed {name} header: {value!r}")
        return None


def print_request_summary(monitor):
    """
    Print request statistics collected by a monitor.

    Args:
        monitor (RequestMonitor): Monitor to summarize
    """
    metrics = monitor.get_metrics_summary()

    thread_safe_print("\n" + "=" * 60)
    thread_safe_print("GRAPH API REQUEST SUMMARY")
    thread_safe_print("=" * 60)
    thread_safe_print(f"   - Total API Requests:       {metrics['total_requests']:>6}")
    thread_safe_print(f"   - Throttled Requests:       {metrics['throttled_requests']:>6} ({metrics['throttle_rate']:.1%})")
    thread_safe_print(f"   - Retries:                  {metrics['retries']:>6}")
    thread_safe_print(f"   - Data uploaded:            {format_bytes(metrics['bytes_uploaded'])}")

    if any(metrics['request_types'].values()):
        thread_safe_print("\n[API] Request Methods:")
        for method, count in metrics['request_types'].items():
            if count > 0:
                thread_safe_print(f"   - {f'{method} requests:':<27} {count:>6}")

    if any(metrics['operations'].values()):
        thread_safe_print("\n[OPS] Operation Types:")
        for op_type, count in metrics['operations'].items():
            if count > 0:
                op_name = op_type.replace('_', ' ').title()
                thread_safe_print(f"   - {f'{op_name}:':<27} {count:>6}")

    if metrics['max_throttle_percentage'] >= 1.0:
        thread_safe_print("\n[!] WARNING: Hit throttling limits during execution")
    elif metrics['max_throttle_percentage'] >= 0.8:
        thread_safe_print("\n[ ] CAUTION: Approached throttling limits")
    else:
        thread_safe_print("\n[OK] Stayed within throttling limits")
    thread_safe_print("=" * 60)


def format_bytes(bytes_value):
    """Human-readable byte count, e.g. '1.5 MB'."""
    value = float(bytes_value)
    for unit in ('B', 'KB', 'MB', 'GB'):
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} TB"
