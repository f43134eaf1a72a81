"""
浏览器场景执行器测试（使用假的 Playwright）
"""

import pytest
from playwright.async_api import Error as PlaywrightError

from fakes import FakePage, make_playwright_factory
from portfolio_labs.config.settings import settings
from portfolio_labs.core.browser_runner import BrowserRunner, ScenarioInterpreter, render
from portfolio_labs.core.errors import BrowserAutomationError
from portfolio_labs.models.browser import StepStatus
from portfolio_labs.scenarios.loader import ScenarioLoader
from portfolio_labs.scenarios.model import ActionKind, BrowserScenarioName


@pytest.fixture
def loader():
    return ScenarioLoader(settings.SCENARIOS_DIR)


class TestScenarioLoader:
    @pytest.mark.parametrize("name", list(BrowserScenarioName))
    def test_builtin_scenarios_load(self, loader, name):
        scenario = loader.load(name.value)
        assert scenario is not None
        assert scenario.name == name.value
        assert scenario.start_url.startswith("https://")
        assert scenario.steps

    def test_missing_scenario(self, loader):
        assert loader.load("no-such-demo") is None

    def test_malformed_scenario(self, tmp_path):
        (tmp_path / "broken.yaml").write_text(
            "name: broken\nsteps:\n  - action: x\n    actions:\n      - kind: teleport\n",
            encoding="utf-8",
        )
        assert ScenarioLoader(tmp_path).load("broken") is None


def test_render_keeps_unknown_placeholders():
    assert render('Title "{title}" at {target_url}', {"title": "Home"}) == 'Title "Home" at {target_url}'
    assert render(None, {}) == ""


def test_interpreter_handles_every_action_kind():
    interpreter = ScenarioInterpreter(FakePage(), {})
    assert set(interpreter.handlers) == set(ActionKind)


class TestBrowserRunner:
    @pytest.mark.asyncio
    async def test_login_demo_succeeds(self, loader):
        page = FakePage()
        factory, browser = make_playwright_factory(page)
        runner = BrowserRunner(loader, playwright_factory=factory)

        result = await runner.run(BrowserScenarioName.LOGIN_DEMO)

        assert result.success is True
        assert result.error is None
        assert [s.step for s in result.steps] == [1, 2, 3, 4, 5, 6]
        assert all(s.status is StepStatus.COMPLETED for s in result.steps)
        assert page.visited == ["https://github.com/login"]
        assert page.values["#login_field"] == "demo-test-user"
        assert result.screenshot.startswith("data:image/png;base64,")
        assert browser.closed is True
        assert browser.context_options["viewport"] == {"width": 1280, "height": 720}

    @pytest.mark.asyncio
    async def test_default_demo_reports_title_and_heading(self, loader):
        page = FakePage(title="Example Domain", texts={"h1": "Example Domain"})
        factory, _ = make_playwright_factory(page)
        runner = BrowserRunner(loader, playwright_factory=factory)

        result = await runner.run(BrowserScenarioName.DEFAULT_DEMO, "https://example.org")

        assert result.success is True
        assert page.visited == ["https://example.org"]
        assert result.steps[0].description == "Opening https://example.org for basic functionality test"
        assert result.steps[-1].description == 'Page title: "Example Domain", Main heading: "Example Domain"'

    @pytest.mark.parametrize("name", list(BrowserScenarioName))
    @pytest.mark.asyncio
    async def test_every_builtin_scenario_runs(self, loader, name):
        factory, _ = make_playwright_factory(FakePage())
        result = await BrowserRunner(loader, playwright_factory=factory).run(name)
        assert result.success is True
        assert result.to_dict()["testType"] == name.value

    @pytest.mark.asyncio
    async def test_missing_element_stops_scenario(self, loader):
        page = FakePage(missing={"#password"})
        factory, browser = make_playwright_factory(page)
        runner = BrowserRunner(loader, playwright_factory=factory)

        result = await runner.run(BrowserScenarioName.LOGIN_DEMO)

        assert result.success is False
        assert "#password" in result.error
        assert result.steps[2].status is StepStatus.FAILED
        assert result.steps[-1].step == "Error occurred"
        assert result.steps[-1].action == "Error occurred"
        assert len(result.steps) == 4
        # 失败后仍然截图并关闭浏览器
        assert page.screenshots == 1
        assert result.screenshot is not None
        assert browser.closed is True

    @pytest.mark.asyncio
    async def test_screenshot_failure_is_not_fatal(self, loader):
        factory, _ = make_playwright_factory(FakePage(screenshot_error=True))
        result = await BrowserRunner(loader, playwright_factory=factory).run(BrowserScenarioName.FORM_DEMO)

        assert result.success is True
        assert result.screenshot is None

    @pytest.mark.asyncio
    async def test_launch_failure(self, loader):
        factory, _ = make_playwright_factory(launch_error=PlaywrightError("Executable doesn't exist"))
        runner = BrowserRunner(loader, playwright_factory=factory)

        with pytest.raises(BrowserAutomationError) as exc_info:
            await runner.run(BrowserScenarioName.SEARCH_DEMO)
        assert "Failed to launch browser" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_context_failure_is_browser_automation_error(self, loader):
        factory, browser = make_playwright_factory(
            context_error=PlaywrightError("Target page, context or browser has been closed")
        )
        runner = BrowserRunner(loader, playwright_factory=factory)

        with pytest.raises(BrowserAutomationError) as exc_info:
            await runner.run(BrowserScenarioName.DEFAULT_DEMO)
        assert "context or browser has been closed" in exc_info.value.message
        assert exc_info.value.error_type == "Browser Automation Failure"
        assert browser.closed is True

    @pytest.mark.asyncio
    async def test_driver_start_failure(self, loader):
        factory, _ = make_playwright_factory(start_error=PlaywrightError("Driver not found"))
        runner = BrowserRunner(loader, playwright_factory=factory)

        with pytest.raises(BrowserAutomationError) as exc_info:
            await runner.run(BrowserScenarioName.DEFAULT_DEMO)
        assert "Driver not found" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unknown_scenario_file(self, tmp_path):
        runner = BrowserRunner(ScenarioLoader(tmp_path), playwright_factory=make_playwright_factory()[0])
        with pytest.raises(BrowserAutomationError):
            await runner.run(BrowserScenarioName.LOGIN_DEMO)
