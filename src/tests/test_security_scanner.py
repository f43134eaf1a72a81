"""
安全扫描实验室测试
"""

import random

import httpx
import pytest

from portfolio_labs.core.security_scanner import (
    SCAN_PROFILES,
    ScanType,
    SecurityScanner,
    analyze_headers,
    analyze_ssl,
    calculate_assessment,
    describe_scan_type,
    run_vulnerability_checks,
)
from portfolio_labs.http_client.client import TargetHTTPClient


class AlwaysZero(random.Random):
    """random() 恒为 0：所有带概率的检查都判定为存在漏洞"""

    def random(self):
        return 0.0


PARTIAL_HEADERS = {
    "Content-Security-Policy": "default-src 'self'",
    "X-Frame-Options": "DENY",
}


class TestAnalyzeHeaders:
    def test_quick_scan_checks_core_headers(self):
        analysis = analyze_headers(PARTIAL_HEADERS, SCAN_PROFILES[ScanType.QUICK])
        assert analysis["present"] == 2
        assert analysis["missing"] == 2
        assert analysis["score"] == 50
        assert analysis["scanDepth"] == "basic"
        assert analysis["recommendations"] == ["Add HTTP Strict Transport Security (HSTS) header"]

    def test_full_scan_checks_extended_headers(self):
        analysis = analyze_headers(PARTIAL_HEADERS, SCAN_PROFILES[ScanType.FULL])
        assert analysis["present"] == 2
        assert analysis["missing"] == 7
        assert analysis["score"] == 22
        assert len(analysis["headers"]) == 9
        assert "Add Cross-Origin-Embedder-Policy for additional security" in analysis["recommendations"]

    def test_header_names_case_insensitive(self):
        analysis = analyze_headers({"STRICT-TRANSPORT-SECURITY": "max-age=1"}, SCAN_PROFILES[ScanType.QUICK])
        assert analysis["headers"]["strict-transport-security"] == "max-age=1"


class TestAnalyzeSsl:
    def test_quick_profile(self):
        analysis = analyze_ssl(SCAN_PROFILES[ScanType.QUICK])
        assert analysis["grade"] == "A"
        assert analysis["score"] == 95
        assert "cipherSuites" not in analysis

    def test_full_profile_adds_cipher_details(self):
        analysis = analyze_ssl(SCAN_PROFILES[ScanType.FULL])
        assert analysis["cipherSuites"]["weak"] == 0
        assert analysis["vulnerabilities"]["heartbleed"] is False


class TestVulnerabilityChecks:
    def test_quick_scan_only_csrf_can_fail(self):
        results = run_vulnerability_checks(SCAN_PROFILES[ScanType.QUICK], AlwaysZero())
        assert results["summary"] == {
            "totalTests": 4,
            "vulnerabilities": 1,
            "score": 75,
            "scanDepth": "basic",
        }
        assert results["checks"]["csrf"]["vulnerable"] is True
        assert results["checks"]["sqlInjection"]["vulnerable"] is False

    def test_full_scan_tags_owasp_categories(self):
        results = run_vulnerability_checks(SCAN_PROFILES[ScanType.FULL], random.Random(1))
        assert results["summary"]["totalTests"] == 8
        assert all("owaspCategory" in check for check in results["checks"].values())


class TestCalculateAssessment:
    def test_clean_results_are_low_risk(self):
        assessment = calculate_assessment(
            {
                "securityHeaders": {"score": 100},
                "sslAnalysis": {"score": 95},
                "vulnerabilityChecks": {"summary": {"score": 100, "vulnerabilities": 0}},
            },
            ScanType.FULL,
        )
        assert assessment["score"] == 98
        assert assessment["risk"] == "Low"
        assert assessment["findings"] == []
        assert "Security posture appears strong - maintain current practices" in assessment["recommendations"]

    def test_weak_headers_and_vulnerabilities(self):
        assessment = calculate_assessment(
            {
                "securityHeaders": {"score": 40},
                "sslAnalysis": {},
                "vulnerabilityChecks": {"summary": {"score": 50, "vulnerabilities": 2}},
            },
            ScanType.QUICK,
        )
        assert assessment["score"] == 45
        assert assessment["risk"] == "High"
        severities = {f["category"]: f["severity"] for f in assessment["findings"]}
        assert severities == {"Security Headers": "High", "Application Security": "Medium"}
        assert assessment["recommendations"][0] == "Consider running a full security audit for comprehensive analysis"

    def test_no_scores_defaults(self):
        assessment = calculate_assessment({}, ScanType.QUICK)
        assert assessment["score"] == 85
        assert assessment["risk"] == "Low"


class TestSecurityScanner:
    @pytest.mark.asyncio
    async def test_quick_scan(self, mock_transport):
        scanner = SecurityScanner(TargetHTTPClient(transport=mock_transport), AlwaysZero())
        results = await scanner.scan("https://example.com", ScanType.QUICK)

        assert results["scanType"] == "quick"
        assert results["securityHeaders"]["score"] == 100
        assert results["sslAnalysis"]["grade"] == "A"
        assert results["vulnerabilityChecks"]["summary"]["vulnerabilities"] == 1
        assert "advancedChecks" not in results
        assert "complianceCheck" not in results
        assert results["securityScore"] == round((100 + 95 + 75) / 3)

    @pytest.mark.asyncio
    async def test_full_scan_adds_advanced_and_compliance(self, mock_transport):
        scanner = SecurityScanner(TargetHTTPClient(transport=mock_transport), random.Random(5))
        results = await scanner.scan("https://example.com", ScanType.FULL)

        assert set(results["advancedChecks"]) == {
            "clickjackingProtection",
            "corsConfiguration",
            "contentTypeValidation",
            "rateLimiting",
        }
        assert 80 <= results["complianceCheck"]["owaspCompliance"]["score"] <= 99
        assert results["securityHeaders"]["scanDepth"] == "comprehensive"

    @pytest.mark.asyncio
    async def test_http_target_skips_ssl(self, mock_transport):
        scanner = SecurityScanner(TargetHTTPClient(transport=mock_transport), random.Random(5))
        results = await scanner.scan("http://example.com", ScanType.QUICK)
        assert results["sslAnalysis"] == {}

    @pytest.mark.asyncio
    async def test_unreachable_target_zeroes_header_score(self, mock_transport):
        scanner = SecurityScanner(TargetHTTPClient(transport=mock_transport), random.Random(5))
        results = await scanner.scan("https://down.example.com", ScanType.QUICK)

        headers = results["securityHeaders"]
        assert headers["score"] == 0
        assert headers["error"] == "Failed to analyze security headers"
        assert headers["details"].startswith("Network request failed")
        assert any(f["category"] == "Security Headers" for f in results["findings"])

    @pytest.mark.asyncio
    async def test_sends_scanner_user_agent(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["method"] = request.method
            seen["user_agent"] = request.headers.get("user-agent")
            return httpx.Response(200)

        scanner = SecurityScanner(TargetHTTPClient(transport=httpx.MockTransport(handler)), random.Random(5))
        await scanner.scan("https://example.com", ScanType.QUICK)

        assert seen["method"] == "HEAD"
        assert seen["user_agent"] == "portfolio-labs-security-scanner/1.0"


def test_describe_scan_type():
    details = describe_scan_type(ScanType.QUICK)
    assert details["focus"] == "Essential security basics"
    assert details["duration"] == "5-10 seconds"
    assert len(details["checks"]) == 4
