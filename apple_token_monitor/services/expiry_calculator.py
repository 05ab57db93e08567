"""
凭据过期计算服务
"""
from datetime import datetime
from typing import Callable, List, Optional
from ..models import ExpiryRecord, ExpiryVerdict, ArtifactResult


class ExpiryCalculator:
    """凭据过期计算器"""

    def __init__(self, warning_days: int = 30, clock: Optional[Callable[[], datetime]] = None):
        """
        初始化过期计算器

        Args:
            warning_days: 提前警告天数，默认30天
            clock: 返回本地当前时间（不带时区）的函数，默认 datetime.now
        """
        if warning_days < 0:
            raise ValueError(f"警告天数不能为负数: {warning_days}")
        self.warning_days = warning_days
        self.clock = clock or datetime.now

    def calculate_days_until_expiry(self, expiry_date: datetime) -> int:
        """
        计算距离过期的天数（向下取整）

        Args:
            expiry_date: 过期时间

        Returns:
            int: 剩余天数（小于等于0表示已过期）
        """
        delta = expiry_date - self.clock()
        return delta.days

    @staticmethod
    def classify_days(days_remaining: int, threshold_days: int) -> ExpiryVerdict:
        """
        根据剩余天数判定状态

        先判断已过期，剩余天数不大于0时不会被判定为即将过期。
        """
        if threshold_days < 0:
            raise ValueError(f"通知阈值不能为负数: {threshold_days}")
        if days_remaining <= 0:
            return ExpiryVerdict.EXPIRED
        if days_remaining <= threshold_days:
            return ExpiryVerdict.NEAR_EXPIRY
        return ExpiryVerdict.HEALTHY

    def classify(self, record: ExpiryRecord, threshold_days: Optional[int] = None) -> ExpiryVerdict:
        """
        判定凭据过期状态

        Args:
            record: 过期信息
            threshold_days: 通知阈值，为None时使用 warning_days

        Returns:
            ExpiryVerdict: 判定结果
        """
        if threshold_days is None:
            threshold_days = self.warning_days
        days_remaining = self.calculate_days_until_expiry(record.expiry_date)
        return self.classify_days(days_remaining, threshold_days)

    def get_expiry_summary(self, results: List[ArtifactResult]) -> str:
        """
        获取过期状态摘要

        Args:
            results: 凭据检查结果列表

        Returns:
            str: 摘要信息
        """
        expired = [r for r in results if r.verdict == ExpiryVerdict.EXPIRED]
        expiring = [r for r in results if r.verdict == ExpiryVerdict.NEAR_EXPIRY]
        healthy = [r for r in results if r.verdict == ExpiryVerdict.HEALTHY]
        skipped = [r for r in results if r.is_skipped]
        failed = [r for r in results if r.error_message]

        summary_parts = [f"总计: {len(results)} 个凭据"]

        if expired:
            summary_parts.append(f"已过期: {len(expired)} 个")

        if expiring:
            summary_parts.append(f"即将过期({self.warning_days}天内): {len(expiring)} 个")

        if healthy:
            summary_parts.append(f"健康: {len(healthy)} 个")

        if skipped:
            summary_parts.append(f"未配置: {len(skipped)} 个")

        if failed:
            summary_parts.append(f"失败: {len(failed)} 个")

        return ", ".join(summary_parts)
