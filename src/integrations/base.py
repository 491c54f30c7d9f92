"""
Document store interface

The task engine never touches storage directly; it goes through these
coroutines. Implementations raise IOFailure when a read or write fails.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class DocumentHandle:
    """Reference to a markdown document"""
    path: str  # relative to the store root, e.g. 'Projects/Garden.md'
    name: str  # basename without extension, e.g. 'Garden'


class DocumentStore(ABC):

    @abstractmethod
    async def list_documents(self) -> List[DocumentHandle]:
        """Every markdown document in the store"""

    @abstractmethod
    async def list_eligible_documents(self) -> List[DocumentHandle]:
        """Documents whose frontmatter marks them as projects"""

    @abstractmethod
    async def read_document(self, handle: DocumentHandle) -> str:
        ...

    @abstractmethod
    async def write_document(self, handle: DocumentHandle, text: str) -> None:
        ...

    async def resolve_document_by_name(self, name: str) -> Optional[DocumentHandle]:
        """First eligible document whose basename equals name"""
        for handle in await self.list_eligible_documents():
            if handle.name == name:
                return handle
        return None

    async def resolve_any_document(self, name: str) -> Optional[DocumentHandle]:
        """First document of any kind whose basename or path equals name"""
        for handle in await self.list_documents():
            if name in (handle.name, handle.path):
                return handle
        return None
