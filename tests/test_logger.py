"""
日志服务测试
"""
import pytest
import os
import logging
from unittest.mock import patch
from datetime import datetime
from io import StringIO

from apple_token_monitor.services.logger import LoggerService
from apple_token_monitor.models import ExpiryRecord, ExpiryVerdict, TrackedArtifact


class TestLoggerService:
    """日志服务测试类"""

    def setup_method(self):
        """测试前准备"""
        self.logger_service = LoggerService(logger_name="test_logger")

        # 捕获日志输出
        self.log_stream = StringIO()
        handler = logging.StreamHandler(self.log_stream)
        handler.setFormatter(logging.Formatter('%(levelname)s - %(message)s'))

        self.logger_service.logger.handlers.clear()
        self.logger_service.logger.addHandler(handler)
        self.logger_service.logger.setLevel(logging.DEBUG)

        self.record = ExpiryRecord(TrackedArtifact.ENROLLMENT_TOKEN, datetime(2026, 3, 15))

    def teardown_method(self):
        """测试后清理"""
        self.logger_service.reset_stats()

    def get_log_output(self) -> str:
        return self.log_stream.getvalue()

    def test_init_default_config(self):
        """测试默认配置初始化"""
        service = LoggerService()

        assert service.logger_name == "apple_token_monitor"
        assert service.logger.propagate is False

    @patch.dict(os.environ, {'LOG_LEVEL': 'DEBUG'})
    def test_init_with_env_log_level(self):
        """测试从环境变量读取日志级别"""
        service = LoggerService(logger_name="env_logger")

        assert service.log_level == "DEBUG"
        assert service.logger.level == logging.DEBUG

    def test_log_run_start(self):
        """测试记录检查开始"""
        self.logger_service.log_run_start(3)

        assert "开始Apple凭据过期检查，共 3 个凭据" in self.get_log_output()
        assert self.logger_service.execution_stats['total_artifacts'] == 3
        assert self.logger_service.execution_stats['start_time'] is not None

    def test_log_artifact_info_expired(self):
        """测试记录已过期凭据"""
        self.logger_service.log_artifact_info(
            TrackedArtifact.ENROLLMENT_TOKEN, self.record, -2, ExpiryVerdict.EXPIRED
        )

        output = self.get_log_output()
        assert "WARNING - 凭据已过期 - EnrollmentToken" in output
        assert "剩余天数: -2 天" in output
        assert self.logger_service.execution_stats['checked'] == 1

    def test_log_artifact_info_near_expiry(self):
        """测试记录即将过期凭据"""
        self.logger_service.log_artifact_info(
            TrackedArtifact.ENROLLMENT_TOKEN, self.record, 10, ExpiryVerdict.NEAR_EXPIRY
        )

        assert "WARNING - 凭据即将过期 - EnrollmentToken" in self.get_log_output()

    def test_log_artifact_info_healthy(self):
        """测试记录正常凭据"""
        self.logger_service.log_artifact_info(
            TrackedArtifact.ENROLLMENT_TOKEN, self.record, 60, ExpiryVerdict.HEALTHY
        )

        assert "INFO - 凭据正常 - EnrollmentToken" in self.get_log_output()

    def test_log_artifact_skipped(self):
        """测试记录资源为空"""
        self.logger_service.log_artifact_skipped(TrackedArtifact.PURCHASE_TOKEN)

        assert "INFO - 未找到 PurchaseToken，跳过检查" in self.get_log_output()
        assert self.logger_service.execution_stats['skipped'] == 1

    def test_log_error(self):
        """测试记录错误信息"""
        self.logger_service.log_error(TrackedArtifact.PUSH_CERTIFICATE, ValueError("bad date"))

        assert "WARNING - PushCertificate 检查时发生错误: ValueError: bad date" in self.get_log_output()
        error_info = self.logger_service.execution_stats['errors'][0]
        assert error_info['artifact'] == "PushCertificate"
        assert error_info['error_type'] == "ValueError"
        assert self.logger_service.execution_stats['failed'] == 1

    def test_log_notification_sent(self):
        """测试记录通知发送成功"""
        self.logger_service.log_notification_sent(TrackedArtifact.PUSH_CERTIFICATE, "it@contoso.com")

        output = self.get_log_output()
        assert "INFO - PushCertificate 通知发送成功，收件人: it@contoso.com" in output
        assert self.logger_service.execution_stats['notifications_sent'] == 1

    def test_log_configuration_info_masks_secrets(self):
        """测试记录配置时隐藏敏感信息"""
        self.logger_service.log_configuration_info({
            'client_secret': 'abcdef123',
            'identity_header': 'xyz789',
            'mail_to': 'it@contoso.com'
        })

        output = self.get_log_output()
        assert "client_secret: abc***" in output
        assert "abcdef123" not in output
        assert "identity_header: xyz***" in output
        assert "mail_to: it@contoso.com" in output

    def test_execution_summary(self):
        """测试执行摘要"""
        self.logger_service.log_run_start(3)
        self.logger_service.log_artifact_skipped(TrackedArtifact.PURCHASE_TOKEN)
        self.logger_service.log_run_end()

        summary = self.logger_service.get_execution_summary()

        assert summary['total_artifacts'] == 3
        assert summary['skipped'] == 1
        assert summary['duration_seconds'] >= 0
        assert summary['end_time'] is not None

        self.logger_service.log_execution_summary()
        assert "执行摘要" in self.get_log_output()

    def test_reset_stats(self):
        """测试重置统计"""
        self.logger_service.log_run_start(3)
        self.logger_service.reset_stats()

        assert self.logger_service.execution_stats['total_artifacts'] == 0
        assert self.logger_service.execution_stats['start_time'] is None
