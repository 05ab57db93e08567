"""
错误处理服务
"""
from typing import Any, Optional, Dict, List
from datetime import datetime, timezone
import logging

from ..models import TrackedArtifact


class MonitorError(Exception):
    """监控任务错误基类"""


class AuthenticationError(MonitorError):
    """无法建立认证会话，整个运行终止"""


class ResourceFetchError(MonitorError):
    """读取远程资源失败"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UnparseableExpiryError(MonitorError):
    """过期字段缺失或格式不符"""

    def __init__(self, artifact: TrackedArtifact, field_name: str, raw_value: Any = None):
        if raw_value is None:
            message = f"{artifact.value} 缺少过期字段 {field_name}"
        else:
            message = f"{artifact.value} 的过期字段 {field_name} 无法解析: {raw_value!r}"
        super().__init__(message)
        self.artifact = artifact
        self.field_name = field_name
        self.raw_value = raw_value


class NotificationSendError(MonitorError):
    """邮件发送失败"""


class ArtifactErrorHandler:
    """凭据检查错误处理器"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def is_fatal(self, error: Exception) -> bool:
        """只有认证失败会终止整个运行"""
        return isinstance(error, AuthenticationError)

    def handle_artifact_error(self, artifact: Optional[TrackedArtifact], error: Exception) -> Dict[str, Any]:
        """
        处理单个凭据检查过程中的错误

        Args:
            artifact: 凭据类型，认证阶段为None
            error: 异常对象

        Returns:
            Dict[str, Any]: 错误处理结果
        """
        artifact_name = artifact.value if artifact else "session"
        error_info = {
            'artifact': artifact_name,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'is_fatal': self.is_fatal(error),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'suggested_action': self._get_suggested_action(error)
        }

        # 错误本身由 LoggerService.log_error 记录，这里只补充处理建议
        self.logger.debug(f"{artifact_name} 建议处理方案: {error_info['suggested_action']}")

        return error_info

    def _get_suggested_action(self, error: Exception) -> str:
        """
        获取错误的建议处理方案

        Args:
            error: 异常对象

        Returns:
            str: 建议的处理方案
        """
        if isinstance(error, AuthenticationError):
            return "检查托管身份或应用凭据配置，以及Graph权限授予"
        elif isinstance(error, UnparseableExpiryError):
            return "检查Graph返回的过期字段格式是否发生变化"
        elif isinstance(error, ResourceFetchError):
            if error.status_code in (401, 403):
                return "检查身份是否拥有DeviceManagement读取权限"
            return "检查网络连接和Graph服务状态"
        elif isinstance(error, NotificationSendError):
            return "检查发件人邮箱权限和邮件服务配置"
        else:
            return "查看日志中的堆栈信息"

    def get_error_statistics(self, error_list: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        获取错误统计信息

        Args:
            error_list: 错误信息列表

        Returns:
            Dict[str, Any]: 错误统计
        """
        if not error_list:
            return {
                'total_errors': 0,
                'fatal_errors': 0,
                'error_types': {},
                'most_common_error': None
            }

        error_types = {}
        fatal_count = 0

        for error_info in error_list:
            error_type = error_info.get('error_type', 'Unknown')
            error_types[error_type] = error_types.get(error_type, 0) + 1

            if error_info.get('is_fatal', False):
                fatal_count += 1

        most_common_error = max(error_types.items(), key=lambda x: x[1])

        return {
            'total_errors': len(error_list),
            'fatal_errors': fatal_count,
            'error_types': error_types,
            'most_common_error': most_common_error[0]
        }
