"""
Read-only views generators expose to the stages that run after them.

Stages depend on these protocols rather than on concrete generators, so a
test can stand in a plain object holding a set of cell ids.
"""

from typing import List, Protocol


class CoastalCellSource(Protocol):
    def is_coastal_cell(self, cell_id: int) -> bool: ...

    def get_coastal_cells(self) -> List[int]: ...


class HillCellSource(Protocol):
    def is_hill_cell(self, cell_id: int) -> bool: ...


class LakeCellSource(Protocol):
    def is_lake_cell(self, cell_id: int) -> bool: ...

    def get_lake_cells(self) -> List[int]: ...


class MarshCellSource(Protocol):
    def is_marsh_cell(self, cell_id: int) -> bool: ...

    def get_marsh_cells(self) -> List[int]: ...