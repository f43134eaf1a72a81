from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List


class FailureResponse(BaseModel):
    """统一失败响应"""
    success: bool = False
    error: str
    error_type: str = Field(serialization_alias="errorType")
    message: str
    troubleshooting: List[str] = Field(default_factory=list)
    performance: Optional[Dict[str, Any]] = None


class HealthResponse(BaseModel):
    """健康检查响应"""
    status: str
    version: str
