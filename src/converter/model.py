from dataclasses import dataclass

PDF_EXTENSION = "pdf"


@dataclass(frozen=True)
class ConvertedDocument:
    data: bytes
    page_count: int
    engine: str
