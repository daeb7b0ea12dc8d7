"""
诊断报告项

批量操作不抛出异常, 而是把每个条目的问题收集为 SclReportItem 返回。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional


class Severity(Enum):
    """诊断级别"""
    WARNING = "WARNING"
    ERROR = "ERROR"
    FATAL = "FATAL"


@dataclass(frozen=True)
class SclReportItem:
    """
    诊断记录

    Attributes:
        severity: 级别
        xpath: 出问题的元素位置, 无法定位时为 None
        message: 可读的描述
    """
    severity: Severity
    xpath: Optional[str]
    message: str

    @classmethod
    def warning(cls, xpath: Optional[str], message: str) -> "SclReportItem":
        return cls(Severity.WARNING, xpath, message)

    @classmethod
    def error(cls, xpath: Optional[str], message: str) -> "SclReportItem":
        return cls(Severity.ERROR, xpath, message)

    @classmethod
    def fatal(cls, xpath: Optional[str], message: str) -> "SclReportItem":
        return cls(Severity.FATAL, xpath, message)

    @property
    def is_fatal(self) -> bool:
        return self.severity == Severity.FATAL

    @property
    def is_error(self) -> bool:
        """ERROR 或 FATAL"""
        return self.severity in (Severity.ERROR, Severity.FATAL)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity.value,
            "xpath": self.xpath,
            "message": self.message,
        }

    def __str__(self) -> str:
        return f"[{self.severity.value}] {self.xpath or '-'}: {self.message}"


def has_errors(items: Iterable[SclReportItem]) -> bool:
    """是否包含 ERROR 或 FATAL 诊断"""
    return any(item.is_error for item in items)
