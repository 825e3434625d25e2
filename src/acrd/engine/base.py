"""Contract between the daemon service and an analysis engine."""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..config import AcrConfig
from ..models import CandidateSet, DeclDesc, RenameDesc


class AnalysisEngine(ABC):
    """Code-analysis backend behind the daemon's RPC surface.

    The daemon calls an engine from every connection thread at once, so
    implementations must be safe to call concurrently and serialize their
    own state. `status` should not wait behind a slow analysis request.
    The live configuration object is shared with the `set` command; read
    options at call time to honour changes made while the daemon runs.
    """

    def __init__(self, config: AcrConfig):
        self.config = config

    @abstractmethod
    def auto_complete(
        self, source: bytes, filename: str, cursor: int
    ) -> Optional[CandidateSet]:
        """Completion candidates at byte offset `cursor` of `source`.

        `filename` is absolute, or empty for an unsaved buffer. Returns None
        when there is nothing to complete.
        """

    @abstractmethod
    def smap(self, filename: str) -> List[DeclDesc]:
        """Declarations of `filename`, in source order."""

    @abstractmethod
    def rename(
        self, filename: str, cursor: int
    ) -> Tuple[Optional[List[RenameDesc]], str]:
        """Occurrences to rewrite when renaming the identifier at `cursor`.

        Returns (descriptors, "") on success, (None, "") when there is
        nothing to rename, and (None, message) when the rename is refused.
        """

    @abstractmethod
    def status(self) -> str:
        """One-paragraph description of the engine's state."""

    @abstractmethod
    def drop_cache(self) -> None:
        """Forget everything cached so far."""
