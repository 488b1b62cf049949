"""Row grid builder for one imported table.

A RowGrid is created by the importer for each table namespace, filled by the
sub-passes in order and handed back as the table's rows. It is never shared
between tables.
"""

from typing import List


class RowGrid:
    """Fixed-width, growable grid of string cells."""

    def __init__(self, column_count: int):
        self.column_count = column_count
        self._rows: List[List[str]] = []

    def __len__(self) -> int:
        return len(self._rows)

    def append_row(self) -> int:
        """Append a blank row and return its index."""
        self._rows.append([""] * self.column_count)
        return len(self._rows) - 1

    def ensure_row(self, row: int) -> None:
        """Grow the grid with blank rows until ``row`` exists."""
        while len(self._rows) <= row:
            self.append_row()

    def get(self, row: int, column: int) -> str:
        if row >= len(self._rows):
            return ""
        return self._rows[row][column]

    def set_cell(self, row: int, column: int, value: str) -> None:
        self.ensure_row(row)
        self._rows[row][column] = value

    def set_if_empty(self, row: int, column: int, value: str) -> bool:
        """Write ``value`` only into an empty cell.

        Returns:
            True if the cell was written
        """
        self.ensure_row(row)
        if self._rows[row][column]:
            return False
        self._rows[row][column] = value
        return True

    def rows(self) -> List[List[str]]:
        """Copy of the grid rows."""
        return [list(row) for row in self._rows]
