from dataclasses import dataclass, field
from typing import Dict, List

PLACEHOLDERS = ("CompanyHeader", "CompanyNumber", "CompanyInitial")


@dataclass(frozen=True)
class MergeFields:
    header: str
    number: str
    initial: str

    def as_context(self) -> Dict[str, str]:
        return {
            "CompanyHeader": self.header,
            "CompanyNumber": self.number,
            "CompanyInitial": self.initial,
        }


@dataclass(frozen=True)
class TemplateReport:
    placeholders: List[str]
    unknown: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
