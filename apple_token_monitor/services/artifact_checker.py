"""
凭据过期检查服务
"""
import re
from datetime import datetime
from typing import Any, Dict, Optional
import logging

from ..interfaces import ArtifactCheckerInterface, ResourceClientInterface
from ..models import ExpiryRecord, TrackedArtifact, ArtifactSpec, get_artifact_spec
from .error_handler import UnparseableExpiryError


_FRACTION_PATTERN = re.compile(r'\.(\d+)')


class ArtifactExpiryChecker(ArtifactCheckerInterface):
    """凭据过期检查器实现"""

    def __init__(self, resource_client: ResourceClientInterface):
        """
        初始化凭据过期检查器

        Args:
            resource_client: 已认证的资源客户端，本类不负责认证
        """
        self.resource_client = resource_client
        self.logger = logging.getLogger(__name__)

    def fetch_expiry(self, artifact: TrackedArtifact) -> Optional[ExpiryRecord]:
        """
        获取单个凭据的过期时间

        Args:
            artifact: 凭据类型

        Returns:
            Optional[ExpiryRecord]: 过期信息，资源为空时返回None

        Raises:
            ResourceFetchError: 读取资源失败
            UnparseableExpiryError: 过期字段缺失或无法解析
        """
        spec = get_artifact_spec(artifact)
        document = self.resource_client.get(spec.lookup_path)

        entry = self._unwrap(artifact, document, spec)
        if entry is None:
            return None

        raw_value = entry.get(spec.expiry_field)
        if raw_value is None:
            raise UnparseableExpiryError(artifact, spec.expiry_field)

        expiry_date = self.parse_expiry_value(artifact, raw_value)
        return ExpiryRecord(artifact=artifact, expiry_date=expiry_date)

    def _unwrap(self, artifact: TrackedArtifact, document: Any, spec: ArtifactSpec) -> Optional[Dict[str, Any]]:
        """
        取出包含过期字段的对象

        只有文档为空、包装字段缺失或为空列表时视为未配置；
        记录存在但不是对象时按过期字段无法解析处理。

        Args:
            artifact: 凭据类型
            document: Graph返回的JSON文档
            spec: 凭据配置

        Returns:
            Optional[Dict[str, Any]]: 包含过期字段的对象，为空时返回None

        Raises:
            UnparseableExpiryError: 记录格式不符
        """
        if not document:
            return None

        entry = document
        if spec.wrapper_key is not None:
            if not isinstance(document, dict):
                raise UnparseableExpiryError(artifact, spec.expiry_field, document)

            entry = document.get(spec.wrapper_key)
            if entry is None:
                return None

            # Graph集合返回列表，只检查第一个
            if isinstance(entry, list):
                if not entry:
                    return None
                if len(entry) > 1:
                    self.logger.debug(f"{spec.lookup_path} 返回 {len(entry)} 条记录，只检查第一条")
                entry = entry[0]

        if not isinstance(entry, dict):
            raise UnparseableExpiryError(artifact, spec.expiry_field, entry)

        return entry

    def parse_expiry_value(self, artifact: TrackedArtifact, raw_value: Any) -> datetime:
        """
        按凭据类型的日期格式解析过期时间

        Args:
            artifact: 凭据类型
            raw_value: 原始字段值

        Returns:
            datetime: 本地时间，不带时区
        """
        spec = get_artifact_spec(artifact)

        if not isinstance(raw_value, str) or not raw_value.strip():
            raise UnparseableExpiryError(artifact, spec.expiry_field, raw_value)

        try:
            if spec.date_format is None:
                return self._parse_iso(raw_value)
            return datetime.strptime(raw_value.strip(), spec.date_format)
        except ValueError as e:
            raise UnparseableExpiryError(artifact, spec.expiry_field, raw_value) from e

    def _parse_iso(self, value: str) -> datetime:
        """
        解析ISO-8601时间

        Graph返回 'Z' 后缀和7位小数秒，先规范化再交给 fromisoformat。
        """
        text = value.strip()
        if text.endswith('Z') or text.endswith('z'):
            text = text[:-1] + '+00:00'
        text = _FRACTION_PATTERN.sub(lambda m: '.' + m.group(1)[:6].ljust(6, '0'), text, count=1)

        parsed = datetime.fromisoformat(text)

        # 转换为本地时间后与本地 now 比较
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone().replace(tzinfo=None)

        return parsed
