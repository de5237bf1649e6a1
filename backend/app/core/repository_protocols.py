"""Boundary Protocols - contracts between the engine core and its IO collaborators.

Invariants:
    - The engine manager NEVER imports a concrete store - it receives an ImageStore
    - All IO operations accessed through Protocol types
    - Implementations provided by infrastructure via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance (ADR: ExMA anti-pattern)
    - Async in Protocol: store implementations do IO; the SQL engine itself stays synchronous
"""

from typing import Awaitable, Protocol

from app.core.domain_types import ExportedFile, StoreRecordInfo


class ImageStore(Protocol):
    """Contract for the durable store holding the single database image record."""
    async def save(self, data: bytes) -> None: ...
    async def load(self) -> bytes | None: ...
    async def delete(self) -> None: ...
    async def size(self) -> int: ...
    async def exists(self) -> bool: ...
    async def info(self) -> StoreRecordInfo | None: ...


class FileDeliverer(Protocol):
    """Hands an exported backup to the user (download, share sheet, disk write)."""
    def __call__(self, exported: ExportedFile) -> Awaitable[None] | None: ...
