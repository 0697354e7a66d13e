from dataclasses import dataclass

@dataclass(frozen=True)
class WriteResult:
    path: str
    size: int
    status: str  # created|overwritten
