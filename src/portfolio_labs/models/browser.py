from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class StepStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class StepLog:
    """步骤日志条目"""

    step: Union[int, str]
    action: str
    description: str
    timestamp: int  # 相对开始的毫秒数
    status: StepStatus = StepStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "action": self.action,
            "description": self.description,
            "timestamp": self.timestamp,
            "status": self.status.value,
        }


@dataclass
class BrowserTestResult:
    """一次浏览器场景执行的结果"""

    test_type: str
    success: bool = False
    duration: int = 0  # ms
    steps: List[StepLog] = field(default_factory=list)
    screenshot: Optional[str] = None  # data URI
    error: Optional[str] = None
    timestamp: str = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "testType": self.test_type,
            "success": self.success,
            "duration": self.duration,
            "steps": [s.to_dict() for s in self.steps],
            "screenshot": self.screenshot,
            "error": self.error,
            "timestamp": self.timestamp,
        }
