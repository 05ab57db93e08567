"""
服务接口定义
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from .models import ExpiryRecord, NotificationEmail, TrackedArtifact


class SessionFactoryInterface(ABC):
    """会话工厂接口"""

    @abstractmethod
    def authenticate(self):
        """使用环境身份获取已认证会话"""
        pass


class ResourceClientInterface(ABC):
    """远程资源读取接口"""

    @abstractmethod
    def get(self, path: str) -> Optional[Dict[str, Any]]:
        """读取资源，资源为空时返回None"""
        pass


class ArtifactCheckerInterface(ABC):
    """凭据过期检查器接口"""

    @abstractmethod
    def fetch_expiry(self, artifact: TrackedArtifact) -> Optional[ExpiryRecord]:
        """获取单个凭据的过期时间"""
        pass


class MailSenderInterface(ABC):
    """邮件发送接口"""

    @abstractmethod
    def send(self, email: NotificationEmail) -> None:
        """发送邮件，失败时抛出 NotificationSendError"""
        pass

    @abstractmethod
    def get_configuration_status(self) -> dict:
        """获取邮件后端配置状态"""
        pass


class LoggerServiceInterface(ABC):
    """日志服务接口"""

    @abstractmethod
    def log_run_start(self, artifact_count: int):
        """记录检查开始"""
        pass

    @abstractmethod
    def log_artifact_info(self, artifact: TrackedArtifact, record: ExpiryRecord,
                          days_remaining: int, verdict):
        """记录凭据信息"""
        pass

    @abstractmethod
    def log_error(self, artifact: TrackedArtifact, error: Exception):
        """记录错误信息"""
        pass
