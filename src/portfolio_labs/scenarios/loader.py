import yaml
from pathlib import Path
from typing import Optional
from portfolio_labs.scenarios.model import (
    ActionConfig,
    ActionKind,
    BrowserScenarioConfig,
    BrowserStepConfig,
)
from portfolio_labs.config.logger import logger


class ScenarioLoader:
    """YAML 浏览器场景加载器"""

    def __init__(self, scenarios_dir: Path):
        self.scenarios_dir = scenarios_dir

    def load(self, scenario_name: str) -> Optional[BrowserScenarioConfig]:
        """加载场景配置"""
        try:
            file_path = self.scenarios_dir / f"{scenario_name}.yaml"

            if not file_path.exists():
                logger.error(f"Scenario file not found: {file_path}")
                return None

            with open(file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)

            config = self._parse_config(data)
            logger.info(f"Loaded scenario: {scenario_name}")
            return config

        except Exception as e:
            logger.error(f"Failed to load scenario {scenario_name}: {e}")
            return None

    def _parse_action(self, data: dict) -> ActionConfig:
        return ActionConfig(
            kind=ActionKind(data['kind']),
            selector=data.get('selector'),
            url=data.get('url'),
            value=data.get('value'),
            key=data.get('key'),
            store=data.get('store'),
            wait_until=data.get('wait_until', 'networkidle'),
            milliseconds=data.get('milliseconds', 0),
            first=data.get('first', False),
        )

    def _parse_config(self, data: dict) -> BrowserScenarioConfig:
        """解析 YAML 数据为 BrowserScenarioConfig"""

        steps = [
            BrowserStepConfig(
                action=step.get('action', f'step_{i + 1}'),
                description=step.get('description', ''),
                actions=[self._parse_action(a) for a in step.get('actions', [])],
            )
            for i, step in enumerate(data.get('steps', []))
        ]

        return BrowserScenarioConfig(
            name=data.get('name'),
            description=data.get('description', ''),
            start_url=data.get('start_url'),
            steps=steps,
        )
