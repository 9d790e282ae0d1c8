"""Linode provider: create, inspect and reboot instances via the Linode API v4."""

import json
import logging

import httpx

from hostprov.config import DEFAULT_API_URL
from hostprov.errors import ProviderError
from hostprov.provisioning.types import Instance

logger = logging.getLogger(__name__)

DRY_RUN_INSTANCE_ID = "dry-run-id"
DRY_RUN_HOST = "dry-run-host"


def _error_reasons(resp):
    """Extract the provider's own diagnostic from an error response."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    errors = body.get("errors") if isinstance(body, dict) else None
    if not isinstance(errors, list):
        return resp.text.strip() or resp.reason_phrase
    reasons = []
    for err in errors:
        if not isinstance(err, dict):
            reasons.append(str(err))
            continue
        reason = err.get("reason", "")
        if err.get("field"):
            reason = f"{err['field']}: {reason}"
        reasons.append(reason)
    return "; ".join(reasons) or resp.reason_phrase


class LinodeClient:
    """Thin typed client over the Linode REST API.

    Args:
        token: personal access token (Bearer auth).
        api_url: API base URL.
        dry_run: if True, log requests instead of sending them.
        transport: optional httpx transport, used by tests.
    """

    def __init__(self, token, api_url=DEFAULT_API_URL, dry_run=False, transport=None):
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.dry_run = dry_run
        self._transport = transport

    # ── API helpers ───────────────────────────────────────────────

    async def _api_request(self, method, path, data=None, params=None, extra_headers=None):
        """Make an authenticated Linode API request.

        Returns:
            Parsed JSON response, or ``None`` in dry-run mode.

        Raises:
            ProviderError: on transport failure or a non-success status.
        """
        url = f"{self.api_url}{path}"

        if self.dry_run:
            logger.info(f"[dry-run] {method} {url}")
            if data is not None:
                logger.info(f"[dry-run] payload: {json.dumps(data, indent=2)}")
            return None

        headers = {"Authorization": f"Bearer {self.token}", "Content-Type": "application/json"}
        if extra_headers:
            headers.update(extra_headers)
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.request(method, url, json=data, params=params, headers=headers, timeout=60)
        except httpx.HTTPError as e:
            raise ProviderError(f"{method} {path} failed: {e}") from e

        if resp.is_error:
            raise ProviderError(f"{method} {path} returned {resp.status_code}: {_error_reasons(resp)}")
        if not resp.content:
            return {}
        try:
            body = resp.json()
        except ValueError:
            raise ProviderError(f"{method} {path} returned a non-JSON response ({resp.status_code})") from None
        if not isinstance(body, dict):
            raise ProviderError(f"{method} {path} returned unexpected JSON: {type(body).__name__}")
        return body

    async def _list_all(self, path, extra_headers=None):
        """Collect ``data`` entries across every page of a list endpoint."""
        items = []
        page = 1
        while True:
            result = await self._api_request("GET", path, params={"page": page}, extra_headers=extra_headers)
            if result is None:  # dry-run
                return items
            items.extend(result.get("data", []))
            if page >= result.get("pages", 1):
                return items
            page += 1

    # ── Instances ─────────────────────────────────────────────────

    async def create_instance(self, label, region, type, image, root_pass, authorized_keys):
        """Create a booted instance.

        POST /linode/instances

        Raises:
            ProviderError: if the API returns no instance ID.
        """
        logger.info(f"Attempt create linode type='{type}' region='{region}' image='{image}' label='{label}'")
        data = {
            "label": label,
            "region": region,
            "type": type,
            "image": image,
            "root_pass": root_pass,
            "authorized_keys": list(authorized_keys),
            "booted": True,
        }
        result = await self._api_request("POST", "/linode/instances", data)
        if self.dry_run:
            return Instance(id=DRY_RUN_INSTANCE_ID, label=label, region=region, type=type, image=image, status="provisioning")

        if not result or not result.get("id"):
            raise ProviderError("Linode creation failed. No instance ID returned.")
        instance = Instance.from_api(result)
        logger.info(f"Created linode, ID: {instance.id}; label: {label}")
        return instance

    async def get_instance(self, instance_id):
        """Read a single instance.

        GET /linode/instances/{id}
        """
        result = await self._api_request("GET", f"/linode/instances/{instance_id}")
        if result is None:  # dry-run
            return Instance(id=str(instance_id), status="running", ipv4=[DRY_RUN_HOST])
        return Instance.from_api(result)

    async def find_by_label(self, label):
        """Return the instance with exactly this label, or None.

        GET /linode/instances filtered by X-Filter.
        """
        items = await self._list_all("/linode/instances", extra_headers={"X-Filter": json.dumps({"label": label})})
        if self.dry_run:
            return Instance(id=DRY_RUN_INSTANCE_ID, label=label)
        for item in items:
            if item.get("label") == label:
                return Instance.from_api(item)
        return None

    async def reboot(self, instance_id):
        """Reboot an instance.

        POST /linode/instances/{id}/reboot. Any non-success response raises
        ProviderError.
        """
        await self._api_request("POST", f"/linode/instances/{instance_id}/reboot", {})
        return True

    # ── Catalogues ────────────────────────────────────────────────

    async def list_regions(self):
        """Sorted region IDs. GET /regions"""
        return sorted(item["id"] for item in await self._list_all("/regions"))

    async def list_types(self):
        """Sorted instance type IDs. GET /linode/types"""
        return sorted(item["id"] for item in await self._list_all("/linode/types"))


def read_authorized_key(path):
    """Read the SSH public key installed for root on the new instance."""
    try:
        with open(path) as f:
            public_key = f.read().strip()
    except OSError as e:
        raise ProviderError(f"Could not read SSH public key {path}: {e}") from e
    if not public_key:
        raise ProviderError(f"SSH public key {path} is empty")
    return public_key
