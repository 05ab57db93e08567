"""
通知邮件渲染服务
"""
from typing import Optional

from ..models import ExpiryVerdict, NotificationEmail, TrackedArtifact, get_artifact_spec


class NotificationRenderer:
    """通知邮件渲染器，每次调用返回新的邮件对象"""

    def render_notification(
        self,
        artifact: TrackedArtifact,
        verdict: ExpiryVerdict,
        days_remaining: Optional[int],
        client_name: str,
        mail_from: str,
        mail_to: str
    ) -> NotificationEmail:
        """
        渲染通知邮件

        Args:
            artifact: 凭据类型
            verdict: 判定结果，不能为 HEALTHY
            days_remaining: 剩余天数，NEAR_EXPIRY 时必填
            client_name: 客户名称
            mail_from: 发件人
            mail_to: 收件人

        Returns:
            NotificationEmail: 通知邮件
        """
        subject = self._format_subject(artifact, verdict, days_remaining, client_name)
        body = self.format_notification_content(artifact, verdict, days_remaining, client_name)

        return NotificationEmail(
            subject=subject,
            body=body,
            mail_from=mail_from,
            mail_to=mail_to
        )

    def _status_phrase(self, verdict: ExpiryVerdict, days_remaining: Optional[int]) -> str:
        if verdict == ExpiryVerdict.EXPIRED:
            return "has expired"
        if verdict == ExpiryVerdict.NEAR_EXPIRY:
            if days_remaining is None:
                raise ValueError("NEAR_EXPIRY 通知需要剩余天数")
            return f"expires in {days_remaining} days"
        raise ValueError(f"{verdict.value} 状态不发送通知")

    def _format_subject(self, artifact: TrackedArtifact, verdict: ExpiryVerdict,
                        days_remaining: Optional[int], client_name: str) -> str:
        display_name = get_artifact_spec(artifact).display_name
        return f"{display_name} {self._status_phrase(verdict, days_remaining)} - {client_name}"

    def format_notification_content(self, artifact: TrackedArtifact, verdict: ExpiryVerdict,
                                    days_remaining: Optional[int], client_name: str) -> str:
        """格式化纯文本邮件正文"""
        spec = get_artifact_spec(artifact)
        return (
            f"{spec.display_name} {self._status_phrase(verdict, days_remaining)}, "
            f"for client '{client_name}'. "
            f"Please renew as per documentation:{spec.documentation_link}"
        )
