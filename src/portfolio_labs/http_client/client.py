import httpx
import time
from typing import Dict, Optional, Tuple
from portfolio_labs.config.logger import logger
from portfolio_labs.config.settings import settings
from portfolio_labs.core.errors import (
    InvalidURLFormatError,
    NetworkFailureError,
    RequestTimeoutError,
)


class TargetHTTPClient:
    """异步 HTTP 客户端，用于访问用户提交的目标 URL"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = settings.OUTBOUND_TIMEOUT
        # 测试中可注入 httpx.MockTransport
        self.transport = transport

    async def fetch(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        content: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Tuple[httpx.Response, float]:
        """
        发送单个请求（不重试）

        Returns:
            (响应, 耗时ms)

        Raises:
            RequestTimeoutError: 超时
            NetworkFailureError: 连接/协议错误
        """
        timeout = timeout if timeout is not None else self.timeout
        start_time = time.time()

        try:
            async with httpx.AsyncClient(
                timeout=timeout,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                response = await client.request(
                    method,
                    url,
                    headers=headers or {},
                    content=content,
                )

            duration_ms = (time.time() - start_time) * 1000
            logger.info(
                "Outbound request completed",
                method=method,
                url=url,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 1),
            )
            return response, duration_ms

        except httpx.TimeoutException as e:
            logger.error(f"Request timeout: {e}", url=url)
            raise RequestTimeoutError(f"Request timeout after {timeout}s")

        except httpx.InvalidURL as e:
            logger.error(f"Invalid request URL: {e}", url=url)
            raise InvalidURLFormatError()

        except httpx.HTTPError as e:
            logger.error(f"Request error: {e}", url=url)
            raise NetworkFailureError(f"Network request failed: {e}")

    async def head(self, url: str, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        """HEAD 请求，只关心响应头"""
        response, _ = await self.fetch("HEAD", url, headers=headers)
        return response
