"""
k6 脚本渲染测试
"""

from portfolio_labs.core.script_emitter import build_stages, render_k6_script
from portfolio_labs.core.shapes import TestShape
from portfolio_labs.models.performance import TestConfiguration


def make_config(shape, virtual_users=10, duration=30, target_url="https://example.com"):
    return TestConfiguration(
        test_type=shape,
        target_url=target_url,
        virtual_users=virtual_users,
        duration=duration,
    )


class TestBuildStages:
    def test_steady_has_no_stages(self):
        assert build_stages(make_config(TestShape.STEADY)) == []

    def test_escalating_ramps_up_then_down(self):
        stages = build_stages(make_config(TestShape.ESCALATING))
        assert [(s.duration_seconds, s.target) for s in stages] == [(10, 10), (10, 20), (10, 0)]

    def test_burst_spikes_to_five_times_load(self):
        stages = build_stages(make_config(TestShape.BURST))
        assert [s.target for s in stages] == [10, 50, 10, 30, 0]
        assert [s.duration_seconds for s in stages] == [3, 6, 12, 6, 3]


class TestRenderK6Script:
    def test_steady_uses_vus_and_duration(self):
        script = render_k6_script(make_config(TestShape.STEADY))
        assert "vus: 10," in script
        assert "duration: '30s'," in script
        assert "stages" not in script

    def test_escalating_lists_three_stages(self):
        script = render_k6_script(make_config(TestShape.ESCALATING))
        assert "stages: [" in script
        assert script.count("{ duration: ") == 3

    def test_burst_spike_stage(self):
        script = render_k6_script(make_config(TestShape.BURST))
        assert "{ duration: '6s', target: 50 }," in script

    def test_target_url_and_checks(self):
        script = render_k6_script(make_config(TestShape.STEADY, target_url="https://api.example.com/items"))
        assert "http.get('https://api.example.com/items');" in script
        assert "'status is 200': (r) => r.status === 200" in script
        assert "sleep(1);" in script

    def test_quotes_in_url_are_escaped(self):
        script = render_k6_script(make_config(TestShape.STEADY, target_url="https://example.com/?q='x'"))
        assert "http.get('https://example.com/?q=\\'x\\'');" in script

    def test_backslashes_in_url_are_escaped(self):
        script = render_k6_script(make_config(TestShape.STEADY, target_url="https://example.com/a\\b'c"))
        assert "http.get('https://example.com/a\\\\b\\'c');" in script
