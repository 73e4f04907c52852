"""Aligned character matrix block."""

from .base import BlockKind, DataBlock

DATA_TYPES = ("dna", "rna", "protein", "standard")


class CharactersBlock(DataBlock):
    """ntax x nchar aligned characters, one row per taxon (1-based)."""

    kind = BlockKind.CHARACTERS

    def __init__(
        self,
        rows: list[str] | None = None,
        data_type: str = "dna",
        gap_char: str = "-",
        missing_char: str = "?",
    ) -> None:
        if data_type not in DATA_TYPES:
            raise ValueError(f"Unknown data type: {data_type}")
        self.rows: list[str] = list(rows) if rows else []
        if len({len(r) for r in self.rows}) > 1:
            raise ValueError("All character rows must have the same length")
        self.data_type = data_type
        self.gap_char = gap_char
        self.missing_char = missing_char

    @property
    def ntax(self) -> int:
        return len(self.rows)

    @property
    def nchar(self) -> int:
        return len(self.rows[0]) if self.rows else 0

    def size(self) -> int:
        return len(self.rows)

    def get_row(self, t: int) -> str:
        return self.rows[t - 1]

    def get(self, t: int, pos: int) -> str:
        """Character of taxon ``t`` at 1-based site ``pos``."""
        return self.rows[t - 1][pos - 1]

    def column(self, pos: int) -> str:
        return "".join(row[pos - 1] for row in self.rows)

    def is_unknown(self, ch: str) -> bool:
        return ch == self.gap_char or ch == self.missing_char

    def copy(self) -> "CharactersBlock":
        result = CharactersBlock(list(self.rows), self.data_type, self.gap_char, self.missing_char)
        result.short_description = self.short_description
        return result

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CharactersBlock):
            return NotImplemented
        return (
            self.rows == other.rows
            and self.data_type == other.data_type
            and self.gap_char == other.gap_char
            and self.missing_char == other.missing_char
        )
