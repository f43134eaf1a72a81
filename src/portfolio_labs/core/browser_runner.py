import base64
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from portfolio_labs.config.logger import logger
from portfolio_labs.config.settings import settings
from portfolio_labs.core.errors import BrowserAutomationError
from portfolio_labs.models.browser import BrowserTestResult, StepLog, StepStatus
from portfolio_labs.scenarios.loader import ScenarioLoader
from portfolio_labs.scenarios.model import (
    ActionConfig,
    ActionKind,
    BrowserScenarioConfig,
    BrowserScenarioName,
)


class _Variables(dict):
    """格式化描述时，未知变量原样保留"""

    def __missing__(self, key):
        return "{" + key + "}"


def render(template: Optional[str], variables: Dict[str, Any]) -> str:
    if not template:
        return ""
    return template.format_map(_Variables(variables))


class ScenarioInterpreter:
    """在一个已打开的页面上逐步执行声明式场景"""

    def __init__(self, page, variables: Dict[str, Any]):
        self.page = page
        self.variables = variables
        self.handlers: Dict[ActionKind, Callable[[ActionConfig], Awaitable[None]]] = {
            ActionKind.NAVIGATE: self._navigate,
            ActionKind.WAIT: self._wait,
            ActionKind.FILL: self._fill,
            ActionKind.SELECT: self._select,
            ActionKind.PRESS: self._press,
            ActionKind.WAIT_FOR_LOAD: self._wait_for_load,
            ActionKind.ASSERT_VISIBLE: self._assert_visible,
            ActionKind.READ_VALUE: self._read_value,
            ActionKind.EXPECT_VALUE: self._expect_value,
            ActionKind.READ_TITLE: self._read_title,
            ActionKind.READ_TEXT: self._read_text,
        }

    def _locator(self, action: ActionConfig):
        if not action.selector:
            raise BrowserAutomationError(f"Action '{action.kind.value}' requires a selector")
        locator = self.page.locator(render(action.selector, self.variables))
        return locator.first if action.first else locator

    async def _navigate(self, action: ActionConfig):
        await self.page.goto(render(action.url, self.variables), wait_until=action.wait_until)

    async def _wait(self, action: ActionConfig):
        await self.page.wait_for_timeout(action.milliseconds)

    async def _fill(self, action: ActionConfig):
        await self._locator(action).fill(render(action.value, self.variables))

    async def _select(self, action: ActionConfig):
        await self._locator(action).select_option(render(action.value, self.variables))

    async def _press(self, action: ActionConfig):
        await self.page.keyboard.press(action.key)

    async def _wait_for_load(self, action: ActionConfig):
        await self.page.wait_for_load_state(action.wait_until)

    async def _assert_visible(self, action: ActionConfig):
        await self._locator(action).wait_for(
            state="visible",
            timeout=settings.BROWSER_ACTION_TIMEOUT_MS,
        )

    async def _read_value(self, action: ActionConfig):
        self.variables[action.store or "value"] = await self._locator(action).input_value()

    async def _expect_value(self, action: ActionConfig):
        expected = render(action.value, self.variables)
        actual = await self._locator(action).input_value()
        if actual != expected:
            raise BrowserAutomationError(
                f"Expected {action.selector} to contain {expected!r}, got {actual!r}"
            )

    async def _read_title(self, action: ActionConfig):
        self.variables[action.store or "title"] = await self.page.title()

    async def _read_text(self, action: ActionConfig):
        self.variables[action.store or "text"] = await self._locator(action).text_content()

    async def execute(self, scenario: BrowserScenarioConfig, result: BrowserTestResult, started: float):
        """
        执行全部步骤，第一个失败的动作终止场景

        失败会记录为 "Error occurred" 步骤并写入 result.error，不向外抛出。
        """

        def elapsed_ms() -> int:
            return int((time.time() - started) * 1000)

        for index, step in enumerate(scenario.steps, start=1):
            result.steps.append(
                StepLog(
                    step=index,
                    action=step.action,
                    description=render(step.description, self.variables),
                    timestamp=elapsed_ms(),
                )
            )
            try:
                for action in step.actions:
                    await self.handlers[action.kind](action)
            except Exception as e:
                message = getattr(e, "message", None) or str(e)
                logger.warning(
                    "Browser step failed",
                    scenario=scenario.name,
                    step=index,
                    action=step.action,
                    error=message,
                )
                result.steps[-1].status = StepStatus.FAILED
                result.error = message
                result.steps.append(
                    StepLog(
                        step="Error occurred",
                        action="Error occurred",
                        description=message,
                        timestamp=elapsed_ms(),
                        status=StepStatus.FAILED,
                    )
                )
                return False

        return True


async def capture_screenshot(page) -> Optional[str]:
    """截取当前页面为 data URI，失败返回 None"""
    try:
        png = await page.screenshot(full_page=False, type="png")
    except PlaywrightError as e:
        logger.warning("Screenshot failed", error=str(e))
        return None
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


class BrowserRunner:
    """通用浏览器场景执行器：启动浏览器 -> 解释场景 -> 截图 -> 关闭"""

    def __init__(self, loader: ScenarioLoader, playwright_factory=async_playwright):
        self.loader = loader
        # 测试中替换为假的 Playwright 上下文管理器
        self.playwright_factory = playwright_factory

    def load_scenario(self, name: BrowserScenarioName) -> BrowserScenarioConfig:
        scenario = self.loader.load(name.value)
        if scenario is None:
            raise BrowserAutomationError(f"Scenario definition not found: {name.value}")
        return scenario

    async def run(self, name: BrowserScenarioName, target_url: Optional[str] = None) -> BrowserTestResult:
        scenario = self.load_scenario(name)
        variables: Dict[str, Any] = {"target_url": target_url or scenario.start_url or ""}
        result = BrowserTestResult(test_type=name.value)

        logger.info("Starting browser scenario", scenario=name.value, target_url=variables["target_url"])
        started = time.time()

        try:
            async with self.playwright_factory() as playwright:
                try:
                    browser = await playwright.chromium.launch(headless=settings.BROWSER_HEADLESS)
                except PlaywrightError as e:
                    raise BrowserAutomationError(f"Failed to launch browser: {e}") from e

                try:
                    context = await browser.new_context(
                        viewport={
                            "width": settings.BROWSER_VIEWPORT_WIDTH,
                            "height": settings.BROWSER_VIEWPORT_HEIGHT,
                        },
                        user_agent=settings.BROWSER_USER_AGENT,
                    )
                    page = await context.new_page()

                    interpreter = ScenarioInterpreter(page, variables)
                    result.success = await interpreter.execute(scenario, result, started)

                    # 无论成功失败都尝试最终截图
                    result.screenshot = await capture_screenshot(page)
                finally:
                    await browser.close()
        except PlaywrightError as e:
            # 驱动启动、上下文或页面创建失败
            logger.error("Browser automation failed", scenario=name.value, error=str(e))
            raise BrowserAutomationError(f"Browser automation failed: {e}") from e

        result.duration = int((time.time() - started) * 1000)

        logger.info(
            "Browser scenario finished",
            scenario=name.value,
            success=result.success,
            duration_ms=result.duration,
        )
        return result
