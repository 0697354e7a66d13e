from dataclasses import dataclass
from typing import List

REQUIRED_FIELDS = ("header", "number", "initial")


@dataclass(frozen=True)
class InputRecord:
    row_number: int
    header: str
    number: str
    initial: str

    @property
    def is_valid(self) -> bool:
        return not self.missing_fields()

    def missing_fields(self) -> List[str]:
        return [name for name in REQUIRED_FIELDS if not getattr(self, name)]
