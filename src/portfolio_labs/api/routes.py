import random
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from portfolio_labs.api.schemas import FailureResponse
from portfolio_labs.config.logger import logger
from portfolio_labs.config.settings import settings
from portfolio_labs.core.api_tester import ApiTester, ApiTestRequest
from portfolio_labs.core.browser_runner import BrowserRunner
from portfolio_labs.core.errors import InvalidParameterError, LabError, MissingParameterError
from portfolio_labs.core.performance_lab import run_performance_test
from portfolio_labs.core.security_scanner import (
    DISCLAIMER,
    ScanType,
    SecurityScanner,
    describe_scan_type,
)
from portfolio_labs.core.shapes import TestShape
from portfolio_labs.core.validation import (
    coerce_positive_int,
    parse_enum,
    require_fields,
    validate_url,
)
from portfolio_labs.http_client.client import TargetHTTPClient
from portfolio_labs.models.performance import TestConfiguration
from portfolio_labs.scenarios.model import BrowserScenarioName


router = APIRouter(tags=["labs"])

# 全局实例（在 main.py 中初始化）
http_client: Optional[TargetHTTPClient] = None
browser_runner: Optional[BrowserRunner] = None
# 随机源工厂，测试中替换为固定种子
rng_factory: Callable[[], random.Random] = random.Random

HTTP_METHODS = {"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"}

PERFORMANCE_TROUBLESHOOTING = [
    "Ensure the target URL is accessible and responds to HTTP requests",
    "Check if the URL supports CORS if testing from browser",
    "Try one of the suggested reliable test URLs",
    "Verify the URL format is correct (include https://)",
]

SECURITY_TROUBLESHOOTING = [
    "Ensure the target URL is accessible and valid",
    "Check if the URL supports HTTPS for SSL analysis",
    "Verify the URL format includes protocol (https://)",
    "Some security checks may not work with localhost URLs",
]


# ============================================================
# 公共工具
# ============================================================

async def _read_payload(request: Request) -> Dict[str, Any]:
    """读取 JSON 请求体，必须是对象"""
    try:
        payload = await request.json()
    except (ValueError, UnicodeDecodeError):
        raise InvalidParameterError("Request body must be valid JSON")
    if not isinstance(payload, dict):
        raise InvalidParameterError("Request body must be a JSON object")
    return payload


def _require_service(service, name: str):
    if service is None:
        raise RuntimeError(f"{name} not initialized")
    return service


def failure_response(
    exc: Exception,
    message: str,
    troubleshooting: Optional[List[str]] = None,
    performance: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """统一失败信封，固定返回 HTTP 500"""
    if isinstance(exc, LabError):
        error, error_type, hints = exc.message, exc.error_type, exc.hints
    else:
        error, error_type, hints = str(exc) or type(exc).__name__, LabError.error_type, list(LabError.troubleshooting)

    body = FailureResponse(
        error=error,
        error_type=error_type,
        message=message,
        troubleshooting=troubleshooting if troubleshooting is not None else hints,
        performance=performance,
    ).model_dump(by_alias=True)
    if body["performance"] is None:
        del body["performance"]

    return JSONResponse(status_code=500, content=body)


def _log_failure(handler: str, exc: Exception):
    if isinstance(exc, LabError):
        logger.warning(f"{handler} rejected", error_type=exc.error_type, error=exc.message)
    else:
        logger.error(f"{handler} failed: {exc}", exc_info=True)


# ============================================================
# 请求解析
# ============================================================

def parse_performance_config(payload: Dict[str, Any]) -> TestConfiguration:
    require_fields(payload, "targetUrl")
    target_url = validate_url(payload["targetUrl"])
    test_type = parse_enum(TestShape, payload.get("testType"), "testType")
    return TestConfiguration(
        test_type=test_type,
        target_url=target_url,
        virtual_users=coerce_positive_int(payload.get("virtualUsers"), settings.DEFAULT_VIRTUAL_USERS),
        duration=coerce_positive_int(payload.get("duration"), settings.DEFAULT_DURATION),
    )


def parse_api_test_request(payload: Dict[str, Any]) -> ApiTestRequest:
    url = payload.get("url") or payload.get("targetUrl")
    if not url:
        raise MissingParameterError("Missing required parameters: url")
    url = validate_url(url)

    method = str(payload.get("method") or "GET").strip().upper()
    if method not in HTTP_METHODS:
        raise InvalidParameterError(f"Unsupported HTTP method: {method}")

    headers = payload.get("headers") or {}
    if not isinstance(headers, dict):
        raise InvalidParameterError("headers must be a JSON object")

    return ApiTestRequest(
        method=method,
        url=url,
        headers=headers,
        body=payload.get("body"),
        timeout_ms=coerce_positive_int(payload.get("timeout"), settings.API_TEST_DEFAULT_TIMEOUT_MS),
        test_name=str(payload.get("testName") or "API Test"),
    )


# ============================================================
# 1. 性能测试实验室
# ============================================================

@router.post("/run-performance-test")
async def run_performance_test_route(request: Request):
    """模拟 k6 性能测试"""

    try:
        payload = await _read_payload(request)
        config = parse_performance_config(payload)
        results = await run_performance_test(config, rng_factory())

        return {
            "success": True,
            "testType": config.test_type.value,
            **results,
            "message": "k6 performance test completed successfully",
            "executedBy": settings.EXECUTED_BY,
        }

    except Exception as e:
        _log_failure("Performance test", e)
        return failure_response(e, "Performance test execution failed", PERFORMANCE_TROUBLESHOOTING)


# ============================================================
# 2. 浏览器自动化实验室
# ============================================================

@router.post("/run-test")
async def run_browser_test_route(request: Request):
    """执行内置的 Playwright 演示场景"""

    try:
        payload = await _read_payload(request)
        scenario = parse_enum(
            BrowserScenarioName,
            payload.get("testType"),
            "testType",
            default=BrowserScenarioName.DEFAULT_DEMO,
        )
        target_url = validate_url(payload["targetUrl"]) if payload.get("targetUrl") else None
        if scenario is not BrowserScenarioName.DEFAULT_DEMO:
            # 其它场景依赖固定站点的页面结构
            target_url = None

        runner = _require_service(browser_runner, "BrowserRunner")
        result = await runner.run(scenario, target_url)

        return {
            **result.to_dict(),
            "message": "Test execution completed",
            "executedBy": settings.EXECUTED_BY,
        }

    except Exception as e:
        _log_failure("Browser test", e)
        return failure_response(e, "Test execution failed")


# ============================================================
# 3. 安全扫描实验室
# ============================================================

@router.post("/security-scan")
async def security_scan_route(request: Request):
    """安全扫描（安全头为真实抓取，其余为模拟）"""

    try:
        payload = await _read_payload(request)
        require_fields(payload, "targetUrl")
        target_url = validate_url(payload["targetUrl"])
        scan_type = parse_enum(ScanType, payload.get("scanType"), "scanType", default=ScanType.FULL)

        scanner = SecurityScanner(_require_service(http_client, "TargetHTTPClient"), rng_factory())
        results = await scanner.scan(target_url, scan_type)

        label = "Quick scan" if scan_type is ScanType.QUICK else "Full security audit"
        return {
            "success": True,
            "message": f"{label} completed successfully",
            "results": results,
            "executedBy": settings.EXECUTED_BY,
            "disclaimer": DISCLAIMER,
            "scanTypeDetails": describe_scan_type(scan_type),
        }

    except Exception as e:
        _log_failure("Security scan", e)
        return failure_response(e, "Security scan failed", SECURITY_TROUBLESHOOTING)


# ============================================================
# 4. API 测试台
# ============================================================

@router.post("/test-api")
async def test_api_route(request: Request):
    """对目标 API 发起一次真实请求并分析"""

    try:
        payload = await _read_payload(request)
        api_request = parse_api_test_request(payload)

        tester = ApiTester(_require_service(http_client, "TargetHTTPClient"))
        results = await tester.run(api_request)

        return {
            "success": True,
            **results,
            "message": "API test completed successfully",
            "executedBy": settings.EXECUTED_BY,
        }

    except Exception as e:
        _log_failure("API test", e)
        return failure_response(
            e,
            "API test execution failed",
            performance={
                "responseTime": None,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
