from typing import List, Optional


class LabError(Exception):
    """实验室请求错误基类

    error_type 供前端分类展示，troubleshooting 为默认排查建议。
    """

    error_type: str = "Unknown Error"
    troubleshooting: tuple = (
        "Check the API documentation for correct usage",
        "Verify authentication credentials if required",
        "Ensure request method and parameters are correct",
    )

    def __init__(self, message: str, hints: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.hints = list(hints) if hints else list(self.troubleshooting)


class MissingParameterError(LabError):
    """缺少必需参数"""

    error_type = "Missing Parameter"
    troubleshooting = (
        "Include every required field in the JSON request body",
        "Check the field names match the documented request format",
    )


class InvalidParameterError(LabError):
    """参数值不在允许范围内"""

    error_type = "Invalid Parameter"
    troubleshooting = (
        "Use one of the documented values for this field",
        "Send the request body as a JSON object",
    )


class InvalidURLFormatError(LabError):
    """URL 格式错误"""

    error_type = "Invalid URL"
    troubleshooting = (
        "Ensure the URL includes the protocol (http:// or https://)",
        "Verify the URL format is correct and properly encoded",
    )

    def __init__(self, message: str = "Invalid URL format", hints: Optional[List[str]] = None):
        super().__init__(message, hints)


class NetworkFailureError(LabError):
    """外部请求网络错误"""

    error_type = "Network Error"
    troubleshooting = (
        "Network connectivity issue - check your internet connection",
        "Verify the API endpoint URL is correct and accessible",
        "Check if CORS is properly configured on the target API",
    )


class RequestTimeoutError(LabError):
    """外部请求超时"""

    error_type = "Timeout"
    troubleshooting = (
        "Request timed out - try increasing timeout or check if the API is responsive",
        "Verify the target server is accessible and not overloaded",
    )


class BrowserAutomationError(LabError):
    """浏览器自动化失败"""

    error_type = "Browser Automation Failure"
    troubleshooting = (
        "Make sure the Playwright browsers are installed (playwright install chromium)",
        "Check that the demo site is reachable from the server",
    )
