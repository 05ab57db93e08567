"""
日志服务
"""
import os
import logging
import traceback
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from ..interfaces import LoggerServiceInterface
from ..models import ExpiryRecord, ExpiryVerdict, TrackedArtifact


class LoggerService(LoggerServiceInterface):
    """日志服务实现"""

    def __init__(self, logger_name: str = "apple_token_monitor", log_level: Optional[str] = None):
        """
        初始化日志服务

        Args:
            logger_name: 日志器名称
            log_level: 日志级别，如果为None则从环境变量读取
        """
        self.logger_name = logger_name
        self.log_level = log_level or os.getenv('LOG_LEVEL', 'INFO')

        # 配置日志器
        self.logger = logging.getLogger(logger_name)
        self._configure_logger()

        # 执行统计
        self.execution_stats = self._empty_stats()

    def _empty_stats(self) -> Dict[str, Any]:
        return {
            'start_time': None,
            'end_time': None,
            'total_artifacts': 0,
            'checked': 0,
            'skipped': 0,
            'failed': 0,
            'notifications_sent': 0,
            'errors': []
        }

    def _configure_logger(self):
        """配置日志器"""
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        self.logger.setLevel(level)

        # 避免重复添加处理器
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(level)

            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)

            self.logger.addHandler(handler)

        self.logger.propagate = False

    def log_run_start(self, artifact_count: int):
        """
        记录检查开始

        Args:
            artifact_count: 要检查的凭据数量
        """
        self.execution_stats['start_time'] = datetime.now(timezone.utc)
        self.execution_stats['total_artifacts'] = artifact_count

        self.logger.info(f"开始Apple凭据过期检查，共 {artifact_count} 个凭据")

    def log_artifact_info(self, artifact: TrackedArtifact, record: ExpiryRecord,
                          days_remaining: int, verdict: ExpiryVerdict):
        """
        记录凭据信息

        Args:
            artifact: 凭据类型
            record: 过期信息
            days_remaining: 剩余天数
            verdict: 判定结果
        """
        self.execution_stats['checked'] += 1
        expiry = record.expiry_date.isoformat()

        if verdict == ExpiryVerdict.EXPIRED:
            self.logger.warning(
                f"凭据已过期 - {artifact.value}, 过期时间: {expiry}, 剩余天数: {days_remaining} 天"
            )
        elif verdict == ExpiryVerdict.NEAR_EXPIRY:
            self.logger.warning(
                f"凭据即将过期 - {artifact.value}, 过期时间: {expiry}, 剩余天数: {days_remaining} 天"
            )
        else:
            self.logger.info(
                f"凭据正常 - {artifact.value}, 过期时间: {expiry}, 剩余天数: {days_remaining} 天"
            )

    def log_artifact_skipped(self, artifact: TrackedArtifact):
        """记录资源为空的凭据"""
        self.execution_stats['skipped'] += 1
        self.logger.info(f"未找到 {artifact.value}，跳过检查")

    def log_error(self, artifact: Optional[TrackedArtifact], error: Exception):
        """
        记录错误信息

        Args:
            artifact: 凭据类型，认证阶段为None
            error: 异常对象
        """
        name = artifact.value if artifact else "session"
        error_info = {
            'artifact': name,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'timestamp': datetime.now(timezone.utc).isoformat()
        }

        self.execution_stats['errors'].append(error_info)
        if artifact is not None:
            self.execution_stats['failed'] += 1

        self.logger.warning(f"{name} 检查时发生错误: {type(error).__name__}: {str(error)}")
        self.logger.debug(f"{name} 错误堆栈跟踪:\n{traceback.format_exc()}")

    def log_notification_sent(self, artifact: TrackedArtifact, recipient: str):
        """
        记录通知发送成功，发送失败经 log_error 记录

        Args:
            artifact: 凭据类型
            recipient: 收件人
        """
        self.execution_stats['notifications_sent'] += 1
        self.logger.info(f"{artifact.value} 通知发送成功，收件人: {recipient}")

    def log_run_end(self):
        """记录检查结束"""
        self.execution_stats['end_time'] = datetime.now(timezone.utc)
        self.logger.info("Apple凭据过期检查完成")

    def log_configuration_info(self, config: Dict[str, Any]):
        """
        记录配置信息

        Args:
            config: 配置信息字典
        """
        safe_config = self._sanitize_config(config)

        self.logger.info("系统配置信息:")
        for key, value in safe_config.items():
            self.logger.info(f"  {key}: {value}")

    def _sanitize_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        清理配置信息中的敏感数据

        Args:
            config: 原始配置

        Returns:
            Dict[str, Any]: 清理后的配置
        """
        safe_config = {}
        for key, value in config.items():
            key_lower = key.lower()

            is_sensitive = (
                key_lower in ('password', 'secret', 'token', 'key') or
                key_lower.endswith('_key') or
                key_lower.endswith('_secret') or
                key_lower.endswith('_password') or
                key_lower.endswith('_token') or
                key_lower.endswith('_header')
            )

            if is_sensitive and isinstance(value, str) and value:
                safe_config[key] = value[:3] + "***" if len(value) > 3 else "***"
            else:
                safe_config[key] = value

        return safe_config

    def get_execution_summary(self) -> Dict[str, Any]:
        """
        获取执行摘要

        Returns:
            Dict[str, Any]: 执行摘要信息
        """
        stats = self.execution_stats
        duration = 0
        if stats['start_time'] and stats['end_time']:
            duration = (stats['end_time'] - stats['start_time']).total_seconds()

        return {
            'start_time': stats['start_time'].isoformat() if stats['start_time'] else None,
            'end_time': stats['end_time'].isoformat() if stats['end_time'] else None,
            'duration_seconds': duration,
            'total_artifacts': stats['total_artifacts'],
            'checked': stats['checked'],
            'skipped': stats['skipped'],
            'failed': stats['failed'],
            'notifications_sent': stats['notifications_sent'],
            'error_count': len(stats['errors']),
            'errors': stats['errors']
        }

    def log_execution_summary(self):
        """记录执行摘要"""
        summary = self.get_execution_summary()

        self.logger.info("=" * 50)
        self.logger.info("执行摘要")
        self.logger.info("=" * 50)
        self.logger.info(f"执行时长: {summary['duration_seconds']:.2f} 秒")
        self.logger.info(f"凭据总数: {summary['total_artifacts']}")
        self.logger.info(f"已检查: {summary['checked']}")
        self.logger.info(f"未配置: {summary['skipped']}")
        self.logger.info(f"检查失败: {summary['failed']}")
        self.logger.info(f"已发送通知: {summary['notifications_sent']}")

        if summary['errors']:
            self.logger.info(f"错误数量: {summary['error_count']}")
            for i, error in enumerate(summary['errors'], 1):
                self.logger.info(f"  错误 {i}: {error['artifact']} - {error['error_type']}: {error['error_message']}")

        self.logger.info("=" * 50)

    def reset_stats(self):
        """重置执行统计"""
        self.execution_stats = self._empty_stats()
