"""
Cell Reference Registry

Symbol table binding semantic keys (``revenue_2_growth_rate``, ``noi``) to the
physical cells that later generation stages reference in their formulas.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from deal_engine.addresses import CellAddress, CellRange


logger = logging.getLogger(__name__)


class MissingReferenceError(Exception):
    """Raised when a required registry key has not been recorded."""

    def __init__(self, key: str, context: Optional[str] = None):
        self.key = key
        self.context = context
        message = f"Required reference missing: '{key}'"
        if context:
            message = f"{message} ({context})"
        super().__init__(message)


@dataclass(frozen=True)
class CellReference:
    """A recorded cell or row range."""
    key: str
    address: CellAddress
    end: Optional[CellAddress] = None

    @property
    def sheet(self) -> str:
        return self.address.sheet

    @property
    def is_range(self) -> bool:
        return self.end is not None

    @property
    def cell_range(self) -> CellRange:
        return CellRange(self.address, self.end or self.address)

    def to_address_string(self) -> str:
        if self.end is None:
            return self.address.to_address_string()
        return self.cell_range.to_address_string()


class CellReferenceRegistry:
    """
    Keyed store of cell references for one generation run.

    Re-recording a key overwrites it. The registry has no versioning: callers
    reset it before a new run and never reuse lookups across resets.
    """

    def __init__(self) -> None:
        self._refs: dict[str, CellReference] = {}

    def record(self, key: str, address: CellAddress, end: Optional[CellAddress] = None) -> CellReference:
        ref = CellReference(key, address, end)
        self._refs.pop(key, None)
        self._refs[key] = ref
        logger.debug("Recorded %s -> %s", key, ref.to_address_string())
        return ref

    def record_range(self, key: str, cell_range: CellRange) -> CellReference:
        return self.record(key, cell_range.start, cell_range.end)

    def lookup(self, key: str) -> Optional[CellReference]:
        return self._refs.get(key)

    def require(self, key: str, context: Optional[str] = None) -> CellReference:
        ref = self._refs.get(key)
        if ref is None:
            raise MissingReferenceError(key, context)
        return ref

    def list_by_sheet(self, sheet: str) -> dict[str, CellReference]:
        return {key: ref for key, ref in self._refs.items() if ref.sheet == sheet}

    def clear_sheet(self, sheet: str) -> int:
        stale = [key for key, ref in self._refs.items() if ref.sheet == sheet]
        for key in stale:
            del self._refs[key]
        if stale:
            logger.debug("Cleared %d references on sheet %s", len(stale), sheet)
        return len(stale)

    def reset(self) -> None:
        self._refs.clear()

    def as_dict(self) -> dict[str, str]:
        return {key: ref.to_address_string() for key, ref in self._refs.items()}

    def __contains__(self, key: object) -> bool:
        return key in self._refs

    def __len__(self) -> int:
        return len(self._refs)
