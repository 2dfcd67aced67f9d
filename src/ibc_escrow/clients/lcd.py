"""Cosmos LCD (REST gateway) client.

Read-only access to the IBC and bank endpoints the monitor needs:

- Cursor pagination over ``pagination.key`` / ``pagination.next_key``
- A fixed request timeout on every call
- Optional exponential backoff (disabled unless ``request_attempts`` > 1)
- Best-effort lookups returning ``LookupResult`` instead of raising
"""

from __future__ import annotations

import asyncio
from typing import Any

import backoff
import requests

from ..constants import (
    BALANCES_PATH,
    CHANNELS_PATH,
    CLIENT_STATE_PATH,
    CONNECTION_PATH,
    DEFAULT_PAGE_LIMIT,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DENOM_TRACE_PATH,
    DENOMS_METADATA_PATH,
    ESCROW_ADDRESS_PATH,
    PAGINATION_KEY_PARAM,
    PAGINATION_LIMIT_PARAM,
    RETRYABLE_STATUS_CODES,
    TRANSFER_PORT,
)
from ..domain import Channel, Coin, DenomMetadata, DenomTrace, LookupResult
from ..logger import TRACE, get_logger

logger = get_logger(__name__)


class PaginationLimitError(RuntimeError):
    """Raised when a collection still has a next key after ``max_pages`` pages."""

    pass


def _is_permanent(exc: Exception) -> bool:
    """Give up immediately on anything but timeouts, connection errors and 429/5xx."""
    if isinstance(exc, requests.exceptions.HTTPError):
        response = exc.response
        return response is None or response.status_code not in RETRYABLE_STATUS_CODES
    return not isinstance(
        exc, (requests.exceptions.ConnectionError, requests.exceptions.Timeout)
    )


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _is_not_found(exc: Exception) -> bool:
    return (
        isinstance(exc, requests.exceptions.HTTPError)
        and exc.response is not None
        and exc.response.status_code == 404
    )


class LcdClient:
    """Async-compatible client for a Cosmos LCD endpoint.

    Requests run in worker threads via ``asyncio.to_thread`` so many
    channel resolutions can be in flight at once on one event loop.
    """

    def __init__(
        self,
        base_url: str,
        *,
        page_limit: int = DEFAULT_PAGE_LIMIT,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        request_attempts: int = 1,
        max_pages: int | None = None,
        session: requests.Session | None = None,
    ):
        """Initialize the LCD client.

        Args:
            base_url: LCD base URL; endpoint paths are appended verbatim
            page_limit: ``pagination.limit`` sent with every page request
            request_timeout: HTTP request timeout in seconds
            request_attempts: Total tries per request (1 means no retry)
            max_pages: Optional cap on pages per collection
            session: Optional preconfigured requests session
        """
        self._base_url = base_url.rstrip("/")
        self._page_limit = page_limit
        self._request_timeout = request_timeout
        self._max_pages = max_pages
        self._session = session or requests.Session()

        self._get = backoff.on_exception(
            backoff.expo,
            requests.exceptions.RequestException,
            max_tries=max(1, request_attempts),
            giveup=_is_permanent,
            jitter=backoff.full_jitter,
        )(self._get_once)

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def page_limit(self) -> int:
        return self._page_limit

    def _request(self, url: str, params: dict[str, str] | None) -> dict[str, Any]:
        response = self._session.get(
            url, params=params, timeout=self._request_timeout
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected response body from {url}: {data!r}")
        return data

    async def _get_once(
        self, path: str, params: dict[str, str] | None = None
    ) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        logger.log(TRACE, "GET %s params=%s", url, params)
        return await asyncio.to_thread(self._request, url, params)

    async def get_json(
        self, path: str, params: dict[str, str] | None = None
    ) -> dict[str, Any]:
        """GET ``path`` and return the decoded JSON object.

        Raises:
            requests.exceptions.RequestException: On transport, timeout or HTTP errors
            ValueError: If the body is not a JSON object
        """
        return await self._get(path, params)

    async def fetch_all_pages(self, path: str, key: str) -> list[Any]:
        """Concatenate the ``key`` array across every page of a collection.

        Pages are requested with the same ``pagination.limit`` until the
        server stops returning a ``pagination.next_key``. A missing array
        counts as an empty page. Any page failure fails the whole fetch.

        Raises:
            PaginationLimitError: If ``max_pages`` is set and exceeded
        """
        items: list[Any] = []
        next_key: str | None = None
        pages = 0

        while True:
            if self._max_pages is not None and pages >= self._max_pages:
                raise PaginationLimitError(
                    f"{path} still paginating after {pages} pages "
                    f"(max_pages={self._max_pages})"
                )

            params = {PAGINATION_LIMIT_PARAM: str(self._page_limit)}
            if next_key:
                params[PAGINATION_KEY_PARAM] = next_key

            data = await self.get_json(path, params)
            pages += 1
            page_items = data.get(key)
            if isinstance(page_items, list):
                items.extend(page_items)

            next_key = _as_dict(data.get("pagination")).get("next_key")
            if not next_key or not isinstance(next_key, str):
                break

        logger.debug(
            "Fetched %d %s from %s in %d page(s)", len(items), key, path, pages
        )
        return items

    async def get_all_channels(self) -> list[Channel]:
        raw = await self.fetch_all_pages(CHANNELS_PATH, "channels")
        return [Channel.from_api(item) for item in raw if isinstance(item, dict)]

    async def get_escrow_address(
        self, channel_id: str, port_id: str = TRANSFER_PORT
    ) -> str:
        """Escrow account for a channel end; raises if the LCD returns none."""
        data = await self.get_json(
            ESCROW_ADDRESS_PATH.format(channel_id=channel_id, port_id=port_id)
        )
        address = data.get("escrow_address")
        if not address:
            raise ValueError(f"No escrow address returned for {port_id}/{channel_id}")
        return str(address)

    async def get_all_balances(self, address: str) -> list[Coin]:
        raw = await self.fetch_all_pages(
            BALANCES_PATH.format(address=address), "balances"
        )
        coins = (Coin.from_api(item) for item in raw if isinstance(item, dict))
        return [coin for coin in coins if coin is not None]

    async def get_all_denoms_metadata(self) -> list[DenomMetadata]:
        raw = await self.fetch_all_pages(DENOMS_METADATA_PATH, "metadatas")
        return [DenomMetadata.from_api(item) for item in raw if isinstance(item, dict)]

    async def get_denom_trace(self, denom_hash: str) -> LookupResult[DenomTrace]:
        """Look up the transfer path behind an ``ibc/<hash>`` denom.

        Never raises: HTTP 404 or an empty body is NOT_FOUND, anything
        else that goes wrong is FAILED.
        """
        try:
            data = await self.get_json(DENOM_TRACE_PATH.format(hash=denom_hash))
        except Exception as e:
            if _is_not_found(e):
                return LookupResult.not_found()
            logger.debug("Denom trace lookup failed for %s: %s", denom_hash, e)
            return LookupResult.failed(str(e) or type(e).__name__)

        trace = data.get("denom_trace")
        if not isinstance(trace, dict) or not trace.get("base_denom"):
            return LookupResult.not_found()
        return LookupResult.resolved(DenomTrace.from_api(trace))

    async def get_counterparty_chain_id(self, connection_id: str) -> LookupResult[str]:
        """Resolve the chain id on the far side of a connection.

        connection -> client_id -> client state -> chain_id. Never raises.
        """
        try:
            conn = await self.get_json(
                CONNECTION_PATH.format(connection_id=connection_id)
            )
            client_id = _as_dict(conn.get("connection")).get("client_id")
            if not client_id:
                return LookupResult.not_found()

            client = await self.get_json(CLIENT_STATE_PATH.format(client_id=client_id))
        except Exception as e:
            if _is_not_found(e):
                return LookupResult.not_found()
            logger.debug("Counterparty lookup failed for %s: %s", connection_id, e)
            return LookupResult.failed(str(e) or type(e).__name__)

        identified = _as_dict(
            _as_dict(client.get("identified_client_state")).get("client_state")
        )
        chain_id = identified.get("chain_id") or _as_dict(
            client.get("client_state")
        ).get("chain_id")
        if not chain_id or not isinstance(chain_id, str):
            return LookupResult.not_found()
        return LookupResult.resolved(str(chain_id))
