"""
运行参数配置管理服务
"""
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging


DEFAULT_NOTIFICATION_TIMESPAN = 30

# 事件参数名 -> 环境变量名
PARAMETER_ENV_VARS = {
    'notificationTimespan': 'NOTIFICATION_TIMESPAN',
    'mailFrom': 'MAIL_FROM',
    'mailTo': 'MAIL_TO',
    'clientName': 'CLIENT_NAME'
}


@dataclass(frozen=True)
class MonitorConfig:
    """运行参数"""
    notification_timespan: int = DEFAULT_NOTIFICATION_TIMESPAN
    mail_from: str = ""
    mail_to: str = ""
    client_name: str = ""


class MonitorConfigManager:
    """运行参数管理器，事件参数优先于环境变量"""

    def __init__(self, event: Optional[Dict[str, Any]] = None):
        """
        初始化运行参数管理器

        Args:
            event: Lambda事件，可包含 notificationTimespan/mailFrom/mailTo/clientName
        """
        self.event = event or {}
        self.logger = logging.getLogger(__name__)

        self.email_pattern = re.compile(r'^[^@\s]+@[^@\s]+\.[a-zA-Z]{2,}$')

    def _get_parameter(self, name: str) -> Optional[Any]:
        value = self.event.get(name)
        if value is None or value == "":
            value = os.getenv(PARAMETER_ENV_VARS[name])
        return value

    def get_config(self) -> MonitorConfig:
        """
        读取运行参数

        Returns:
            MonitorConfig: 运行参数
        """
        return MonitorConfig(
            notification_timespan=self.get_notification_timespan(),
            mail_from=str(self._get_parameter('mailFrom') or "").strip(),
            mail_to=str(self._get_parameter('mailTo') or "").strip(),
            client_name=str(self._get_parameter('clientName') or "").strip()
        )

    def get_notification_timespan(self) -> int:
        """
        读取通知阈值天数，无效时使用默认值

        Returns:
            int: 阈值天数
        """
        raw_value = self._get_parameter('notificationTimespan')
        if raw_value is None:
            return DEFAULT_NOTIFICATION_TIMESPAN

        timespan = self._parse_timespan(raw_value)
        if timespan is None:
            self.logger.warning(
                f"无效的通知阈值: {raw_value!r}，使用默认值 {DEFAULT_NOTIFICATION_TIMESPAN} 天"
            )
            return DEFAULT_NOTIFICATION_TIMESPAN

        return timespan

    def _parse_timespan(self, raw_value: Any) -> Optional[int]:
        if isinstance(raw_value, bool):
            return None
        try:
            number = float(str(raw_value).strip())
        except ValueError:
            return None
        # JSON事件中的 14.0 按 14 天处理，带小数的天数无效
        if not number.is_integer() or number < 0:
            return None
        return int(number)

    def validate_email(self, address: str) -> bool:
        """
        验证邮箱地址格式

        Args:
            address: 邮箱地址

        Returns:
            bool: 格式是否有效
        """
        if not address or not isinstance(address, str):
            return False
        return bool(self.email_pattern.match(address))

    def validate_configuration(self) -> dict:
        """
        验证运行参数

        Returns:
            dict: 验证结果
        """
        config = self.get_config()
        errors = []
        warnings = []

        raw_timespan = self._get_parameter('notificationTimespan')
        if raw_timespan is not None and self._parse_timespan(raw_timespan) is None:
            errors.append(f"无效的通知阈值: {raw_timespan!r}")

        for name, value in (('mailFrom', config.mail_from), ('mailTo', config.mail_to)):
            if not value:
                warnings.append(f"未配置 {name}，无法发送通知")
            elif not self.validate_email(value):
                errors.append(f"{name} 不是有效的邮箱地址: {value}")

        if not config.client_name:
            warnings.append("未配置 clientName")

        return {
            'is_valid': not errors,
            'errors': errors,
            'warnings': warnings,
            'notification_timespan': config.notification_timespan,
            'mail_from': config.mail_from,
            'mail_to': config.mail_to,
            'client_name': config.client_name
        }
