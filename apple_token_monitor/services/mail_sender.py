"""
邮件发送服务
"""
import os
import logging
from typing import Optional
from urllib.parse import quote

import boto3
import requests
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from requests.exceptions import RequestException

from ..interfaces import MailSenderInterface
from ..models import NotificationEmail
from .error_handler import NotificationSendError
from .graph_auth import GraphSession, get_request_timeout


MAIL_BACKENDS = ('graph', 'ses')


class GraphMailSender(MailSenderInterface):
    """通过 Graph sendMail 发送邮件"""

    def __init__(self, session: GraphSession):
        """
        初始化Graph邮件发送器

        Args:
            session: 已认证的Graph会话，身份需要 Mail.Send 权限
        """
        self.session = session
        self.logger = logging.getLogger(__name__)

    def build_url(self, mail_from: str) -> str:
        # sendMail 只在 v1.0 上使用
        return f"{self.session.root_url}/v1.0/users/{quote(mail_from)}/sendMail"

    def build_payload(self, email: NotificationEmail) -> dict:
        return {
            'message': {
                'subject': email.subject,
                'body': {
                    'contentType': 'Text',
                    'content': email.body
                },
                'toRecipients': [
                    {'emailAddress': {'address': email.mail_to}}
                ]
            },
            'saveToSentItems': False
        }

    def send(self, email: NotificationEmail) -> None:
        """
        发送邮件

        Args:
            email: 通知邮件

        Raises:
            NotificationSendError: 发送失败
        """
        if not email.mail_from or not email.mail_to:
            raise NotificationSendError("发件人或收件人未配置")

        try:
            response = requests.post(
                self.build_url(email.mail_from),
                json=self.build_payload(email),
                headers=self.session.auth_headers(),
                timeout=self.session.timeout
            )
        except RequestException as e:
            raise NotificationSendError(f"Graph邮件发送失败: {str(e)}") from e

        if not response.ok:
            raise NotificationSendError(
                f"Graph邮件发送失败 - HTTP {response.status_code}: {response.text[:200]}"
            )

        self.logger.info(f"Graph邮件发送成功，收件人: {email.mail_to}")

    def get_configuration_status(self) -> dict:
        return {
            'backend': 'graph',
            'base_url': self.session.root_url,
            'identity_source': self.session.identity_source,
            'configuration_valid': bool(self.session.access_token)
        }


class SESMailSender(MailSenderInterface):
    """通过 Amazon SES 发送邮件"""

    def __init__(self, region_name: Optional[str] = None, timeout: Optional[int] = None):
        """
        初始化SES邮件发送器

        Args:
            region_name: AWS区域名称，如果为None则从环境变量读取
            timeout: 连接和读取超时时间（秒）
        """
        self.region_name = region_name or os.getenv('AWS_REGION', 'us-east-1')
        self.timeout = timeout or get_request_timeout()
        self.logger = logging.getLogger(__name__)

        # 不重试，由调度器在下个周期重新运行
        config = Config(
            connect_timeout=self.timeout,
            read_timeout=self.timeout,
            retries={'max_attempts': 1, 'mode': 'standard'}
        )
        self.ses_client = boto3.client('ses', region_name=self.region_name, config=config)
        self.logger.info(f"SES客户端初始化成功，区域: {self.region_name}")

    def send(self, email: NotificationEmail) -> None:
        """
        发送邮件

        Args:
            email: 通知邮件

        Raises:
            NotificationSendError: 发送失败
        """
        if not email.mail_from or not email.mail_to:
            raise NotificationSendError("发件人或收件人未配置")

        try:
            response = self.ses_client.send_email(
                Source=email.mail_from,
                Destination={'ToAddresses': [email.mail_to]},
                Message={
                    'Subject': {'Data': email.subject, 'Charset': 'UTF-8'},
                    'Body': {'Text': {'Data': email.body, 'Charset': 'UTF-8'}}
                }
            )
        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']
            raise NotificationSendError(f"SES发送失败 - {error_code}: {error_message}") from e
        except BotoCoreError as e:
            raise NotificationSendError(f"SES发送失败: {str(e)}") from e

        self.logger.info(f"SES邮件发送成功，MessageId: {response.get('MessageId')}")

    def test_connection(self) -> bool:
        """
        测试SES连接

        Returns:
            bool: 连接是否成功
        """
        try:
            self.ses_client.get_send_quota()
            self.logger.info("SES连接测试成功")
            return True
        except (ClientError, BotoCoreError) as e:
            self.logger.error(f"SES连接测试失败: {str(e)}")
            return False

    def get_configuration_status(self) -> dict:
        return {
            'backend': 'ses',
            'region_name': self.region_name,
            'configuration_valid': self.ses_client is not None,
            'connection_ok': self.test_connection()
        }


def create_mail_sender(backend: Optional[str], session: GraphSession) -> MailSenderInterface:
    """
    按配置创建邮件发送器

    Args:
        backend: "graph" 或 "ses"，为None时从环境变量 MAIL_BACKEND 读取
        session: 已认证的Graph会话

    Returns:
        MailSenderInterface: 邮件发送器
    """
    backend = (backend or os.getenv('MAIL_BACKEND', 'graph')).lower()

    if backend == 'ses':
        return SESMailSender()
    if backend == 'graph':
        return GraphMailSender(session)

    raise ValueError(f"未知的邮件后端: {backend}，可选值: {', '.join(MAIL_BACKENDS)}")
