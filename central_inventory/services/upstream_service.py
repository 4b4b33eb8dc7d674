from __future__ import annotations

import json
import logging
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from central_inventory.config import settings
from central_inventory.exceptions import UpstreamError
from central_inventory.schemas import PartsIssueOut, PurchaseOrderOut
from central_inventory.services import status_adapter

logger = logging.getLogger(__name__)


def _upstream_get(path: str, params: dict[str, str] | None = None):
    if not settings.upstream_api_base_url:
        raise UpstreamError('UPSTREAM_API_BASE_URL is required')

    headers = {'Accept': 'application/json'}
    if settings.upstream_api_token:
        headers['Authorization'] = f'Bearer {settings.upstream_api_token}'

    query = {key: value for key, value in (params or {}).items() if value}
    url = f"{settings.upstream_api_base_url.rstrip('/')}{path}"
    if query:
        url = f'{url}?{urlencode(query)}'

    req = Request(url=url, headers=headers, method='GET')
    try:
        with urlopen(req, timeout=settings.upstream_timeout_seconds) as response:
            return json.loads(response.read().decode('utf-8'))
    except HTTPError as exc:
        body = exc.read().decode('utf-8', errors='ignore') if exc.fp else ''
        logger.warning('upstream_http_error', extra={'path': path, 'status_code': exc.code})
        raise UpstreamError(f'Upstream API error {exc.code}: {body}') from exc
    except URLError as exc:
        logger.warning('upstream_network_error', extra={'path': path, 'reason': str(exc.reason)})
        raise UpstreamError(f'Upstream API network error: {exc.reason}') from exc
    except json.JSONDecodeError as exc:
        raise UpstreamError(f'Upstream API returned invalid JSON for {path}') from exc


def _records(parsed) -> list[dict]:
    # Either a bare list or a {"data": [...]} page.
    if isinstance(parsed, dict):
        parsed = parsed.get('data', [])
    if not isinstance(parsed, list):
        raise UpstreamError('Upstream API returned an unexpected payload')
    return [row for row in parsed if isinstance(row, dict)]


def fetch_parts_issues(status: str | None = None) -> list[PartsIssueOut]:
    params = {}
    if status:
        canonical = status_adapter.parse_parts_issue_status(status)
        params['status'] = status_adapter.to_external_parts_issue_status(canonical).value
    rows = _records(_upstream_get('/parts-issues', params))
    logger.info('upstream_parts_issues_fetched', extra={'count': len(rows), 'status': params.get('status')})
    return [status_adapter.inbound_parts_issue(row) for row in rows]


def fetch_purchase_orders(status: str | None = None) -> list[PurchaseOrderOut]:
    params = {}
    if status:
        canonical = status_adapter.parse_purchase_order_status(status)
        params['status'] = status_adapter.to_external_purchase_order_status(canonical).value
    rows = _records(_upstream_get('/purchase-orders', params))
    logger.info('upstream_purchase_orders_fetched', extra={'count': len(rows), 'status': params.get('status')})
    return [status_adapter.inbound_purchase_order(row) for row in rows]
