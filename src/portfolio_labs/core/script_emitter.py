"""k6 script rendering.

Produces the k6 script a user would run to reproduce a lab test. The stage
layout mirrors the shape used by the metric generator. The script is only
returned for display; nothing here executes it.
"""

from dataclasses import dataclass
from typing import Dict, List

from jinja2 import Template, TemplateError

from portfolio_labs.core.shapes import TestShape
from portfolio_labs.models.performance import TestConfiguration


@dataclass(frozen=True)
class Stage:
    duration_seconds: int
    target: int


K6_SCRIPT_TEMPLATE = """import http from 'k6/http';
import { check, sleep } from 'k6';

export let options = {
{%- if stages %}
  stages: [
{%- for stage in stages %}
    { duration: '{{ stage.duration_seconds }}s', target: {{ stage.target }} },
{%- endfor %}
  ],
{%- else %}
  vus: {{ virtual_users }},
  duration: '{{ duration }}s',
{%- endif %}
};

export default function() {
  let response = http.get('{{ target_url }}');

  check(response, {
    'status is 200': (r) => r.status === 200,
    'response time < 500ms': (r) => r.timings.duration < 500,
  });

  sleep(1);
}
"""

# (时长占比, 并发倍数)
_STAGE_PLANS: Dict[TestShape, List[tuple]] = {
    TestShape.STEADY: [],
    TestShape.ESCALATING: [(1 / 3, 1), (1 / 3, 2), (1 / 3, 0)],
    TestShape.BURST: [(0.1, 1), (0.2, 5), (0.4, 1), (0.2, 3), (0.1, 0)],
}


def build_stages(config: TestConfiguration) -> List[Stage]:
    """按形态计算 k6 stages；steady 返回空列表（单一平台期）"""
    return [
        Stage(
            duration_seconds=round(config.duration * share),
            target=config.virtual_users * multiplier,
        )
        for share, multiplier in _STAGE_PLANS[config.test_type]
    ]


def render_k6_script(config: TestConfiguration) -> str:
    """
    渲染 k6 脚本

    Raises:
        ValueError: 模板渲染失败
    """
    try:
        template = Template(K6_SCRIPT_TEMPLATE)
        return template.render(
            stages=build_stages(config),
            virtual_users=config.virtual_users,
            duration=config.duration,
            target_url=config.target_url.replace("\\", "\\\\").replace("'", "\\'"),
        )
    except TemplateError as e:
        raise ValueError(f"Failed to render k6 script template: {e}") from e
