"""Denomination resolution with trace and metadata caches."""

from __future__ import annotations

import asyncio
from typing import Protocol

from ..constants import DEFAULT_DECIMALS, IBC_DENOM_PREFIX
from ..domain import (
    DenomMetadata,
    DenomTrace,
    LookupResult,
    LookupStatus,
    ResolvedDenomInfo,
)
from ..logger import get_logger

logger = get_logger(__name__)


class DenomSource(Protocol):
    async def get_denom_trace(self, denom_hash: str) -> LookupResult[DenomTrace]: ...

    async def get_all_denoms_metadata(self) -> list[DenomMetadata]: ...


class DenomResolver:
    """Resolves raw bank denoms to display symbol and decimals.

    Owns two caches for its whole lifetime: denom traces keyed by IBC hash
    (negative outcomes included) and bank metadata keyed by base denom.
    Neither is invalidated; a new resolver is needed to pick up denoms
    registered after the first prime.

    Safe for concurrent use from many tasks on one event loop: priming is
    guarded so at most one full metadata fetch ever happens, and each hash
    is looked up at most once even when several tasks ask for it together.
    """

    def __init__(
        self, source: DenomSource, *, default_decimals: int = DEFAULT_DECIMALS
    ):
        self._source = source
        self._default_decimals = default_decimals

        self._trace_cache: dict[str, LookupResult[DenomTrace]] = {}
        self._trace_locks: dict[str, asyncio.Lock] = {}

        self._metadata_by_base: dict[str, DenomMetadata] = {}
        self._metadata_primed = False
        self._prime_lock = asyncio.Lock()

    @property
    def metadata_primed(self) -> bool:
        return self._metadata_primed

    @property
    def metadata_count(self) -> int:
        return len(self._metadata_by_base)

    async def prime_metadata_cache(self) -> None:
        """Fetch and index all bank metadata, at most once per resolver.

        The attempt is recorded even when the fetch fails, so a failed prime
        is not retried; the error still propagates to this caller and later
        resolutions fall back to raw denoms.
        """
        if self._metadata_primed:
            return
        async with self._prime_lock:
            if self._metadata_primed:
                return
            try:
                metadatas = await self._source.get_all_denoms_metadata()
                for meta in metadatas:
                    if meta.base:
                        self._metadata_by_base[meta.base] = meta
                logger.info(
                    "Primed denom metadata cache with %d entries",
                    len(self._metadata_by_base),
                )
            except Exception as e:
                logger.error("Denom metadata priming failed: %s", e)
                raise
            finally:
                self._metadata_primed = True

    async def lookup_trace(self, denom_hash: str) -> LookupResult[DenomTrace]:
        """Cached trace lookup; every outcome, including NOT_FOUND, is cached."""
        cached = self._trace_cache.get(denom_hash)
        if cached is not None:
            return cached

        lock = self._trace_locks.setdefault(denom_hash, asyncio.Lock())
        async with lock:
            cached = self._trace_cache.get(denom_hash)
            if cached is None:
                cached = await self._source.get_denom_trace(denom_hash)
                if cached.status is LookupStatus.FAILED:
                    logger.warning(
                        "Denom trace for %s unavailable, using raw denom: %s",
                        denom_hash,
                        cached.error,
                    )
                self._trace_cache[denom_hash] = cached
        return cached

    async def resolve(self, raw_denom: str) -> ResolvedDenomInfo:
        base_denom = raw_denom
        if raw_denom.startswith(IBC_DENOM_PREFIX):
            denom_hash = raw_denom[len(IBC_DENOM_PREFIX) :].split("/", 1)[0]
            if denom_hash:
                trace = await self.lookup_trace(denom_hash)
                if trace.found and trace.value is not None:
                    base_denom = trace.value.base_denom

        if not self._metadata_primed:
            await self.prime_metadata_cache()

        meta = self._metadata_by_base.get(base_denom)
        if meta is None:
            return ResolvedDenomInfo(
                base_denom=base_denom,
                display_denom=base_denom,
                decimals=self._default_decimals,
                raw_denom=raw_denom,
            )

        display = meta.display or base_denom
        return ResolvedDenomInfo(
            base_denom=base_denom,
            display_denom=meta.symbol or display,
            symbol=meta.symbol,
            decimals=self._decimals_for(meta, display),
            raw_denom=raw_denom,
        )

    def _decimals_for(self, meta: DenomMetadata, display: str) -> int:
        exponent = meta.exponent_for(display)
        if exponent is None:
            exponent = meta.exponent_for(meta.base)
        if exponent is None:
            return self._default_decimals
        return exponent
