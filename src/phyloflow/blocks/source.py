"""Source block: the input files a loader reads."""

from pathlib import Path

from .base import BlockKind, DataBlock


class SourceBlock(DataBlock):
    """Ordered list of input files."""

    kind = BlockKind.SOURCE

    def __init__(self, sources: list[Path | str] | None = None) -> None:
        self.sources: list[Path] = [Path(s) for s in sources] if sources else []

    def size(self) -> int:
        return len(self.sources)

    def copy(self) -> "SourceBlock":
        result = SourceBlock(list(self.sources))
        result.short_description = self.short_description
        return result

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SourceBlock):
            return NotImplemented
        return self.sources == other.sources
