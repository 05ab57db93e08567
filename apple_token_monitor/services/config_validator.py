"""
配置验证服务
"""
import os
from typing import Dict, Any, Optional
import logging

from .mail_sender import MAIL_BACKENDS
from .monitor_config import MonitorConfigManager


class ConfigValidator:
    """配置验证器"""

    def __init__(self):
        """初始化配置验证器"""
        self.logger = logging.getLogger(__name__)

        # 可选的环境变量
        self.optional_env_vars = {
            'NOTIFICATION_TIMESPAN': '通知阈值天数',
            'MAIL_FROM': '发件人邮箱',
            'MAIL_TO': '收件人邮箱',
            'CLIENT_NAME': '客户名称',
            'MAIL_BACKEND': '邮件后端（graph/ses）',
            'LOG_LEVEL': '日志级别',
            'REQUEST_TIMEOUT': '网络请求超时时间'
        }

        self.sensitive_vars = {'AZURE_CLIENT_SECRET', 'IDENTITY_HEADER', 'AWS_SECRET_ACCESS_KEY'}

    def validate_all_configurations(self) -> Dict[str, Any]:
        """
        验证所有配置

        Returns:
            Dict[str, Any]: 验证结果
        """
        validation_result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'configurations': {}
        }

        sections = {
            'environment': self.validate_environment_variables(),
            'identity': self.validate_identity_configuration(),
            'mail': self.validate_mail_configuration(),
            'parameters': MonitorConfigManager().validate_configuration()
        }

        for name, section in sections.items():
            validation_result['configurations'][name] = section
            if not section['is_valid']:
                validation_result['is_valid'] = False
                validation_result['errors'].extend(section['errors'])
            validation_result['warnings'].extend(section['warnings'])

        return validation_result

    def validate_environment_variables(self) -> Dict[str, Any]:
        """
        验证环境变量

        Returns:
            Dict[str, Any]: 环境变量验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'missing_optional': [],
            'present_vars': {}
        }

        for var_name, description in self.optional_env_vars.items():
            value = os.getenv(var_name)
            if not value:
                result['missing_optional'].append({
                    'name': var_name,
                    'description': description
                })
            else:
                result['present_vars'][var_name] = self._sanitize_env_value(var_name, value)

        timeout = os.getenv('REQUEST_TIMEOUT')
        if timeout:
            try:
                if int(timeout) <= 0:
                    result['warnings'].append(f"REQUEST_TIMEOUT 必须为正数: {timeout}，使用默认值")
            except ValueError:
                result['warnings'].append(f"REQUEST_TIMEOUT 格式无效: {timeout}，使用默认值")

        return result

    def validate_identity_configuration(self) -> Dict[str, Any]:
        """
        验证Graph认证身份配置

        Returns:
            Dict[str, Any]: 身份配置验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'identity_source': None
        }

        if os.getenv('IDENTITY_ENDPOINT') and os.getenv('IDENTITY_HEADER'):
            result['identity_source'] = 'managed_identity'
        elif os.getenv('AZURE_TENANT_ID') and os.getenv('AZURE_CLIENT_ID') and os.getenv('AZURE_CLIENT_SECRET'):
            result['identity_source'] = 'client_credentials'
        else:
            result['is_valid'] = False
            result['errors'].append(
                "未找到Graph认证身份: 需要托管身份端点或 AZURE_TENANT_ID/AZURE_CLIENT_ID/AZURE_CLIENT_SECRET"
            )

        if os.getenv('IDENTITY_ENDPOINT') and not os.getenv('IDENTITY_HEADER'):
            result['warnings'].append("设置了 IDENTITY_ENDPOINT 但缺少 IDENTITY_HEADER")

        return result

    def validate_mail_configuration(self) -> Dict[str, Any]:
        """
        验证邮件后端配置

        Returns:
            Dict[str, Any]: 邮件配置验证结果
        """
        backend = os.getenv('MAIL_BACKEND', 'graph').lower()
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'backend': backend
        }

        if backend not in MAIL_BACKENDS:
            result['is_valid'] = False
            result['errors'].append(f"未知的邮件后端: {backend}")
        elif backend == 'ses' and not os.getenv('AWS_REGION'):
            result['warnings'].append("AWS_REGION 未设置，SES 使用默认区域 us-east-1")

        return result

    def _sanitize_env_value(self, var_name: str, value: str) -> str:
        """
        清理环境变量值（隐藏敏感信息）

        Args:
            var_name: 变量名
            value: 变量值

        Returns:
            str: 清理后的值
        """
        if var_name in self.sensitive_vars and value:
            return value[:3] + "***" if len(value) > 8 else "***"
        return value

    def get_configuration_summary(self, validation_result: Optional[Dict[str, Any]] = None) -> str:
        """
        获取配置摘要

        Args:
            validation_result: 已有的验证结果，为None时重新验证

        Returns:
            str: 配置摘要文本
        """
        if validation_result is None:
            validation_result = self.validate_all_configurations()

        lines = [
            "配置验证摘要",
            "=" * 30
        ]

        if validation_result['is_valid']:
            lines.append("✅ 配置验证通过")
        else:
            lines.append("❌ 配置验证失败")

        if validation_result['errors']:
            lines.append("\n错误:")
            for error in validation_result['errors']:
                lines.append(f"  • {error}")

        if validation_result['warnings']:
            lines.append("\n警告:")
            for warning in validation_result['warnings']:
                lines.append(f"  • {warning}")

        configurations = validation_result.get('configurations', {})
        identity = configurations.get('identity', {})
        mail = configurations.get('mail', {})
        lines.append("\n配置详情:")
        lines.append(f"  认证身份: {identity.get('identity_source') or '未配置'}")
        lines.append(f"  邮件后端: {mail.get('backend')}")

        return "\n".join(lines)
