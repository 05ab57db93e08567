"""
数据模型定义
"""
import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, List, Dict


class TrackedArtifact(Enum):
    """受监控的Apple凭据类型"""
    PUSH_CERTIFICATE = "PushCertificate"
    ENROLLMENT_TOKEN = "EnrollmentToken"
    PURCHASE_TOKEN = "PurchaseToken"


class ExpiryVerdict(Enum):
    """过期判定结果"""
    EXPIRED = "Expired"
    NEAR_EXPIRY = "NearExpiry"
    HEALTHY = "Healthy"


# Graph集合返回的日期格式为 月/日/年，不能自动推断
US_DATE_FORMAT = '%m/%d/%Y %H:%M:%S'

PUSH_CERTIFICATE_DOC_URL = (
    "https://learn.microsoft.com/en-us/mem/intune/enrollment/apple-mdm-push-certificate-get"
)


@dataclass(frozen=True)
class ArtifactSpec:
    """单个凭据类型的查询路径、字段路径和日期格式"""
    lookup_path: str
    expiry_field: str
    display_name: str
    wrapper_key: Optional[str] = None
    date_format: Optional[str] = None  # None 表示 ISO-8601
    documentation_link: str = ""


ARTIFACT_SPECS: Dict[TrackedArtifact, ArtifactSpec] = {
    TrackedArtifact.PUSH_CERTIFICATE: ArtifactSpec(
        lookup_path="deviceManagement/applePushNotificationCertificate",
        expiry_field="expirationDateTime",
        display_name="Apple MDM Push certificate",
        documentation_link=os.getenv('PUSH_CERTIFICATE_DOC_URL', PUSH_CERTIFICATE_DOC_URL),
    ),
    TrackedArtifact.ENROLLMENT_TOKEN: ArtifactSpec(
        lookup_path="deviceManagement/depOnboardingSettings",
        expiry_field="tokenExpirationDateTime",
        display_name="Apple DEP token",
        wrapper_key="value",
        date_format=US_DATE_FORMAT,
    ),
    TrackedArtifact.PURCHASE_TOKEN: ArtifactSpec(
        lookup_path="deviceAppManagement/vppTokens",
        expiry_field="ExpirationDateTime",
        display_name="Apple VPP token",
        wrapper_key="value",
        date_format=US_DATE_FORMAT,
    ),
}


def get_artifact_spec(artifact: TrackedArtifact) -> ArtifactSpec:
    """获取凭据类型对应的配置"""
    return ARTIFACT_SPECS[artifact]


@dataclass(frozen=True)
class ExpiryRecord:
    """凭据过期信息（本地时间，不带时区）"""
    artifact: TrackedArtifact
    expiry_date: datetime


@dataclass(frozen=True)
class NotificationEmail:
    """通知邮件"""
    subject: str
    body: str
    mail_from: str
    mail_to: str


@dataclass
class ArtifactResult:
    """单个凭据的检查结果"""
    artifact: TrackedArtifact
    record: Optional[ExpiryRecord] = None
    days_remaining: Optional[int] = None
    verdict: Optional[ExpiryVerdict] = None
    notification_sent: bool = False
    error_message: Optional[str] = None

    @property
    def is_notifiable(self) -> bool:
        """判断是否需要发送通知"""
        return self.verdict in (ExpiryVerdict.EXPIRED, ExpiryVerdict.NEAR_EXPIRY)

    @property
    def is_skipped(self) -> bool:
        """资源为空时跳过"""
        return self.record is None and self.verdict is None and self.error_message is None


@dataclass
class MonitorResult:
    """一次运行的结果统计"""
    authenticated: bool
    artifact_results: List[ArtifactResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    error_statistics: Dict[str, Any] = field(default_factory=dict)
    execution_time: float = 0.0

    @property
    def expired_artifacts(self) -> List[ArtifactResult]:
        return [r for r in self.artifact_results if r.verdict == ExpiryVerdict.EXPIRED]

    @property
    def expiring_artifacts(self) -> List[ArtifactResult]:
        return [r for r in self.artifact_results if r.verdict == ExpiryVerdict.NEAR_EXPIRY]

    @property
    def notifications_sent(self) -> int:
        return len([r for r in self.artifact_results if r.notification_sent])
