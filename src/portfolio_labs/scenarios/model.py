from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class BrowserScenarioName(str, Enum):
    """内置浏览器演示场景"""

    LOGIN_DEMO = "login-demo"
    SEARCH_DEMO = "search-demo"
    FORM_DEMO = "form-demo"
    DEFAULT_DEMO = "default-demo"


class ActionKind(str, Enum):
    """声明式浏览器动作"""

    NAVIGATE = "navigate"
    WAIT = "wait"
    FILL = "fill"
    SELECT = "select"
    PRESS = "press"
    WAIT_FOR_LOAD = "wait_for_load"
    ASSERT_VISIBLE = "assert_visible"
    READ_VALUE = "read_value"
    EXPECT_VALUE = "expect_value"
    READ_TITLE = "read_title"
    READ_TEXT = "read_text"


@dataclass
class ActionConfig:
    """单个动作配置"""

    kind: ActionKind
    selector: Optional[str] = None
    url: Optional[str] = None
    value: Optional[str] = None
    key: Optional[str] = None
    store: Optional[str] = None  # 读取结果保存到的变量名
    wait_until: str = "networkidle"
    milliseconds: int = 0
    first: bool = False  # 只取第一个匹配元素


@dataclass
class BrowserStepConfig:
    """单个步骤：一条日志 + 若干动作"""

    action: str
    description: str = ""
    actions: List[ActionConfig] = field(default_factory=list)


@dataclass
class BrowserScenarioConfig:
    """浏览器场景配置"""

    name: str
    description: str = ""
    start_url: Optional[str] = None
    steps: List[BrowserStepConfig] = field(default_factory=list)
