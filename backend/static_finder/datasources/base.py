from typing import List, Optional, Protocol

from ..schemas import RawHit, SearchPage


class DataSource(Protocol):
    """Read-only view of a code hosting service."""

    async def search_page(self, query: str, page: int, per_page: int) -> SearchPage:
        ...

    async def get_repository(self, full_name: str) -> Optional[RawHit]:
        ...

    async def get_readme(self, full_name: str) -> Optional[str]:
        ...

    async def list_directory(self, full_name: str, path: str = "") -> List[str]:
        ...

    async def get_file_text(self, full_name: str, path: str) -> Optional[str]:
        ...
