import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from portfolio_labs.config.logger import logger
from portfolio_labs.config.settings import settings
from portfolio_labs.http_client.client import TargetHTTPClient

BODY_METHODS = {"POST", "PUT", "PATCH"}

SECURITY_HEADER_NAMES = {
    "content-security-policy": "CSP",
    "x-frame-options": "X-Frame-Options",
    "x-content-type-options": "X-Content-Type-Options",
    "strict-transport-security": "HSTS",
    "x-xss-protection": "XSS Protection",
}

SLOW_RESPONSE_MS = 2000


@dataclass
class ApiTestRequest:
    """API 测试请求（已校验）"""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    timeout_ms: int = 10000
    test_name: str = "API Test"

    def outgoing_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": settings.API_TEST_USER_AGENT,
        }
        headers.update({str(k): str(v) for k, v in self.headers.items()})
        return headers

    def outgoing_body(self) -> Optional[str]:
        if self.method not in BODY_METHODS or self.body in (None, ""):
            return None
        if isinstance(self.body, str):
            return self.body
        return json.dumps(self.body)


def status_analysis(status: int) -> Dict[str, str]:
    if 200 <= status < 300:
        return {"category": "Success", "description": "Request completed successfully", "color": "green"}
    if 300 <= status < 400:
        return {"category": "Redirect", "description": "Request redirected", "color": "yellow"}
    if 400 <= status < 500:
        return {"category": "Client Error", "description": "Client-side error occurred", "color": "red"}
    if status >= 500:
        return {"category": "Server Error", "description": "Server-side error occurred", "color": "red"}
    return {"category": "Unknown", "description": "Unexpected status code", "color": "gray"}


def performance_analysis(response_time_ms: float) -> Dict[str, str]:
    if response_time_ms < 200:
        return {"rating": "Excellent", "description": "Very fast response time", "color": "green"}
    if response_time_ms < 500:
        return {"rating": "Good", "description": "Acceptable response time", "color": "green"}
    if response_time_ms < 1000:
        return {"rating": "Fair", "description": "Slow response time", "color": "yellow"}
    if response_time_ms < 2000:
        return {"rating": "Poor", "description": "Very slow response time", "color": "orange"}
    return {"rating": "Critical", "description": "Extremely slow response time", "color": "red"}


def security_analysis(headers: httpx.Headers) -> Dict[str, Any]:
    present = [name for header, name in SECURITY_HEADER_NAMES.items() if headers.get(header)]
    missing = [name for header, name in SECURITY_HEADER_NAMES.items() if not headers.get(header)]
    return {
        "presentHeaders": present,
        "missingHeaders": missing,
        "score": round(len(present) / len(SECURITY_HEADER_NAMES) * 100),
    }


def data_validation(data: Any, content_type: str) -> Dict[str, Any]:
    validation = {"isValid": True, "dataType": "unknown", "structure": "unknown", "size": 0}

    if "application/json" in content_type:
        validation["dataType"] = "JSON"
        validation["isValid"] = isinstance(data, (dict, list))
        validation["structure"] = "array" if isinstance(data, list) else "object"
    elif "text/" in content_type:
        validation["dataType"] = "Text"
        validation["structure"] = "string"
    else:
        validation["dataType"] = "Binary/Other"

    validation["size"] = len(json.dumps(data, ensure_ascii=False).encode("utf-8"))
    return validation


def parse_body(text: str, content_type: str) -> Any:
    """JSON 响应解析失败时回退为原始文本"""
    if "application/json" in content_type:
        try:
            return json.loads(text)
        except ValueError:
            return text
    return text


def analyze_response(response: httpx.Response, data: Any, response_time_ms: float) -> Dict[str, Any]:
    content_type = response.headers.get("content-type", "")
    analysis = {
        "statusAnalysis": status_analysis(response.status_code),
        "performanceAnalysis": performance_analysis(response_time_ms),
        "securityAnalysis": security_analysis(response.headers),
        "dataValidation": data_validation(data, content_type),
        "recommendations": [],
    }

    recommendations: List[str] = analysis["recommendations"]
    if response_time_ms > SLOW_RESPONSE_MS:
        recommendations.append("Response time is high (>2s) - consider optimizing API performance")
    if response.status_code >= 400:
        recommendations.append("Request failed - verify endpoint URL, method, and required parameters")
    if not response.headers.get("content-security-policy"):
        recommendations.append("Consider implementing Content Security Policy headers")
    if not recommendations:
        recommendations.append("API response looks healthy - good performance and status")

    return analysis


class ApiTester:
    """API 测试台：执行一次真实请求并分析响应"""

    def __init__(self, http_client: TargetHTTPClient):
        self.http_client = http_client

    async def run(self, request: ApiTestRequest) -> Dict[str, Any]:
        headers = request.outgoing_headers()
        body = request.outgoing_body()

        logger.info("Starting API test", method=request.method, url=request.url, test_name=request.test_name)

        response, duration_ms = await self.http_client.fetch(
            request.method,
            request.url,
            headers=headers,
            content=body,
            timeout=request.timeout_ms / 1000,
        )
        response_time = round(duration_ms)

        text = response.text
        content_type = response.headers.get("content-type", "")
        data = parse_body(text, content_type)

        return {
            "testName": request.test_name,
            "request": {
                "method": request.method,
                "url": request.url,
                "headers": headers,
                "body": body,
            },
            "response": {
                "status": response.status_code,
                "statusText": response.reason_phrase,
                "headers": dict(response.headers),
                "data": data,
                "contentType": content_type,
                "size": len(response.content),
            },
            "performance": {
                "responseTime": response_time,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
            "analysis": analyze_response(response, data, response_time),
        }
