"""
定时任务入口点
"""
import os
import sys
from typing import Any, Callable, Dict, List, Optional
from datetime import datetime, timezone

from .services.artifact_checker import ArtifactExpiryChecker
from .services.config_validator import ConfigValidator
from .services.error_handler import ArtifactErrorHandler, AuthenticationError, NotificationSendError
from .services.expiry_calculator import ExpiryCalculator
from .services.graph_auth import GraphSession, GraphSessionFactory
from .services.graph_client import GraphResourceClient
from .services.logger import LoggerService
from .services.mail_sender import create_mail_sender
from .services.monitor_config import MonitorConfig, MonitorConfigManager
from .services.notification import NotificationRenderer
from .interfaces import ArtifactCheckerInterface, MailSenderInterface, SessionFactoryInterface
from .models import ArtifactResult, MonitorResult, TrackedArtifact


def _default_checker_factory(session: GraphSession) -> ArtifactCheckerInterface:
    return ArtifactExpiryChecker(GraphResourceClient(session))


def _default_mail_sender_factory(session: GraphSession) -> MailSenderInterface:
    return create_mail_sender(None, session)


class ExpiryMonitor:
    """Apple凭据过期监控器主类"""

    def __init__(
        self,
        config: Optional[MonitorConfig] = None,
        session_factory: Optional[SessionFactoryInterface] = None,
        checker_factory: Optional[Callable[[Any], ArtifactCheckerInterface]] = None,
        mail_sender_factory: Optional[Callable[[Any], MailSenderInterface]] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        初始化监控器

        Args:
            config: 运行参数，如果为None则从环境变量读取
            session_factory: 会话工厂，默认使用Graph环境身份
            checker_factory: 根据会话创建凭据检查器
            mail_sender_factory: 根据会话创建邮件发送器，首次发送时才创建
            clock: 返回本地当前时间的函数
        """
        self.logger_service = LoggerService()
        self.config = config or MonitorConfigManager().get_config()
        self.session_factory = session_factory or GraphSessionFactory()
        self.checker_factory = checker_factory or _default_checker_factory
        self.mail_sender_factory = mail_sender_factory or _default_mail_sender_factory
        self.expiry_calculator = ExpiryCalculator(
            warning_days=self.config.notification_timespan,
            clock=clock
        )
        self.renderer = NotificationRenderer()
        self.error_handler = ArtifactErrorHandler()

        self._mail_sender = None
        self.error_infos: List[Dict[str, Any]] = []

        self._log_configuration()

    def _log_configuration(self):
        """记录系统配置信息"""
        config = {
            'notification_timespan': self.config.notification_timespan,
            'mail_from': self.config.mail_from,
            'mail_to': self.config.mail_to,
            'client_name': self.config.client_name,
            'mail_backend': os.getenv('MAIL_BACKEND', 'graph'),
            'log_level': os.getenv('LOG_LEVEL', 'INFO')
        }

        self.logger_service.log_configuration_info(config)

    def execute(self) -> MonitorResult:
        """
        执行凭据过期检查

        Returns:
            MonitorResult: 检查结果
        """
        start_time = datetime.now(timezone.utc)
        artifacts = list(TrackedArtifact)

        try:
            session = self.session_factory.authenticate()
        except AuthenticationError as e:
            self._record_error(None, e)
            self.logger_service.logger.info("认证失败，本次不检查任何凭据")
            return MonitorResult(
                authenticated=False,
                errors=[str(e)],
                error_statistics=self.error_handler.get_error_statistics(self.error_infos),
                execution_time=self._elapsed(start_time)
            )

        self.logger_service.log_run_start(len(artifacts))
        checker = self.checker_factory(session)

        results = [self._evaluate_artifact(artifact, checker, session) for artifact in artifacts]

        self.logger_service.log_run_end()
        self.logger_service.logger.info(self.expiry_calculator.get_expiry_summary(results))
        self.logger_service.log_execution_summary()

        return MonitorResult(
            authenticated=True,
            artifact_results=results,
            errors=[r.error_message for r in results if r.error_message],
            error_statistics=self.error_handler.get_error_statistics(self.error_infos),
            execution_time=self._elapsed(start_time)
        )

    def _elapsed(self, start_time: datetime) -> float:
        return (datetime.now(timezone.utc) - start_time).total_seconds()

    def _record_error(self, artifact: Optional[TrackedArtifact], error: Exception):
        """记录错误：写日志、计入执行统计并保留错误详情"""
        self.logger_service.log_error(artifact, error)
        self.error_infos.append(self.error_handler.handle_artifact_error(artifact, error))

    def _evaluate_artifact(self, artifact: TrackedArtifact, checker: ArtifactCheckerInterface,
                           session: Any) -> ArtifactResult:
        """
        检查单个凭据，错误只影响当前凭据

        Args:
            artifact: 凭据类型
            checker: 凭据检查器
            session: 已认证会话

        Returns:
            ArtifactResult: 检查结果
        """
        result = ArtifactResult(artifact=artifact)

        try:
            record = checker.fetch_expiry(artifact)
            if record is None:
                self.logger_service.log_artifact_skipped(artifact)
                return result

            result.record = record
            result.days_remaining = self.expiry_calculator.calculate_days_until_expiry(record.expiry_date)
            result.verdict = self.expiry_calculator.classify_days(
                result.days_remaining, self.config.notification_timespan
            )
            self.logger_service.log_artifact_info(artifact, record, result.days_remaining, result.verdict)

            if result.is_notifiable:
                self._send_notification(result, session)

        except Exception as e:
            self._record_error(artifact, e)
            result.error_message = str(e)

        return result

    def _send_notification(self, result: ArtifactResult, session: Any):
        """
        渲染并发送通知，发送失败只记录错误

        Args:
            result: 需要通知的凭据检查结果
            session: 已认证会话
        """
        email = self.renderer.render_notification(
            result.artifact,
            result.verdict,
            result.days_remaining,
            self.config.client_name,
            self.config.mail_from,
            self.config.mail_to
        )

        try:
            self._get_mail_sender(session).send(email)
        except NotificationSendError as e:
            self._record_error(result.artifact, e)
            result.error_message = str(e)
            return

        result.notification_sent = True
        self.logger_service.log_notification_sent(result.artifact, email.mail_to)

    def _get_mail_sender(self, session: Any) -> MailSenderInterface:
        if self._mail_sender is None:
            try:
                self._mail_sender = self.mail_sender_factory(session)
            except Exception as e:
                raise NotificationSendError(f"邮件发送器初始化失败: {str(e)}") from e
        return self._mail_sender

    def validate_system_health(self) -> dict:
        """
        验证系统健康状态

        Returns:
            dict: 系统健康状态信息
        """
        health_status = {
            'overall_healthy': True,
            'components': {},
            'issues': []
        }

        validator = ConfigValidator()
        validation = validator.validate_all_configurations()
        self.logger_service.logger.info(validator.get_configuration_summary(validation))
        health_status['components']['configuration'] = {
            'healthy': validation['is_valid'],
            'details': validation
        }
        if not validation['is_valid']:
            health_status['overall_healthy'] = False
            health_status['issues'].extend(validation['errors'])

        try:
            session = self.session_factory.authenticate()
        except AuthenticationError as e:
            health_status['components']['authentication'] = {
                'healthy': False,
                'details': {'error': str(e)}
            }
            health_status['overall_healthy'] = False
            health_status['issues'].append(f"认证失败: {str(e)}")
            return health_status

        health_status['components']['authentication'] = {
            'healthy': True,
            'details': {'identity_source': getattr(session, 'identity_source', 'unknown')}
        }

        # 邮件后端状态
        try:
            mail_status = self._get_mail_sender(session).get_configuration_status()
        except NotificationSendError as e:
            mail_status = {'configuration_valid': False, 'error': str(e)}

        mail_healthy = bool(mail_status.get('configuration_valid') and mail_status.get('connection_ok', True))
        health_status['components']['mail'] = {
            'healthy': mail_healthy,
            'details': mail_status
        }
        if not mail_healthy:
            health_status['overall_healthy'] = False
            health_status['issues'].append(f"邮件后端不可用: {mail_status.get('error', mail_status.get('backend'))}")

        return health_status


def _build_response(result: MonitorResult) -> Dict[str, Any]:
    response = {
        'statusCode': 200,
        'body': {
            'message': 'Apple token monitor executed successfully',
            'summary': {
                'authenticated': result.authenticated,
                'checked_artifacts': len([r for r in result.artifact_results if r.record]),
                'expired_artifacts': len(result.expired_artifacts),
                'expiring_artifacts': len(result.expiring_artifacts),
                'notifications_sent': result.notifications_sent,
                'execution_time_seconds': result.execution_time
            },
            'artifacts': {
                r.artifact.value: {
                    'verdict': r.verdict.value if r.verdict else None,
                    'days_remaining': r.days_remaining,
                    'expiry_date': r.record.expiry_date.isoformat() if r.record else None,
                    'notification_sent': r.notification_sent,
                    'error': r.error_message
                }
                for r in result.artifact_results
            },
            'errors': result.errors[:5],  # 只返回前5个错误
            'error_statistics': result.error_statistics,
            'timestamp': datetime.now(timezone.utc).isoformat()
        }
    }

    if not result.authenticated:
        response['statusCode'] = 500
        response['body']['message'] = 'Apple token monitor failed to authenticate'

    return response


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda函数入口点

    Args:
        event: EventBridge触发事件，可携带 notificationTimespan/mailFrom/mailTo/clientName，
               healthCheck 为真时只做健康检查
        context: Lambda运行时上下文

    Returns:
        dict: 执行结果和统计信息
    """
    try:
        config = MonitorConfigManager(event).get_config()
        monitor = ExpiryMonitor(config=config)

        if (event or {}).get('healthCheck'):
            health = monitor.validate_system_health()
            return {
                'statusCode': 200 if health['overall_healthy'] else 503,
                'body': health
            }

        result = monitor.execute()
        return _build_response(result)

    except Exception as e:
        LoggerService().logger.exception(f"Lambda函数执行时发生严重错误: {str(e)}")
        return {
            'statusCode': 500,
            'body': {
                'message': 'Apple token monitor encountered a critical error',
                'error': str(e),
                'timestamp': datetime.now(timezone.utc).isoformat()
            }
        }


def main() -> int:
    """命令行入口，供cron或自动化任务调用"""
    result = ExpiryMonitor().execute()
    return 0 if result.authenticated else 1


if __name__ == '__main__':
    sys.exit(main())
