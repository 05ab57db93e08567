"""
凭据过期计算器测试
"""
import pytest
from datetime import datetime, timedelta

from apple_token_monitor.services.expiry_calculator import ExpiryCalculator
from apple_token_monitor.models import (
    ArtifactResult,
    ExpiryRecord,
    ExpiryVerdict,
    TrackedArtifact,
)


NOW = datetime(2026, 3, 1, 12, 0, 0)


def make_record(expiry_date: datetime, artifact=TrackedArtifact.PUSH_CERTIFICATE) -> ExpiryRecord:
    return ExpiryRecord(artifact=artifact, expiry_date=expiry_date)


class TestExpiryCalculator:
    """凭据过期计算器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.calculator = ExpiryCalculator(warning_days=14, clock=lambda: NOW)

    def test_calculate_days_until_expiry_future(self):
        """测试计算未来过期时间"""
        assert self.calculator.calculate_days_until_expiry(NOW + timedelta(days=10)) == 10

    def test_calculate_days_until_expiry_floors_partial_days(self):
        """测试不足一天按向下取整"""
        assert self.calculator.calculate_days_until_expiry(NOW + timedelta(days=10, hours=23)) == 10
        assert self.calculator.calculate_days_until_expiry(NOW + timedelta(hours=5)) == 0
        assert self.calculator.calculate_days_until_expiry(NOW - timedelta(hours=1)) == -1

    def test_calculate_days_until_expiry_past(self):
        """测试计算过去过期时间"""
        assert self.calculator.calculate_days_until_expiry(NOW - timedelta(days=5)) == -5

    def test_classify_expired_yesterday(self):
        """测试昨天过期的凭据"""
        record = make_record(NOW - timedelta(days=1))
        assert self.calculator.classify(record, 14) == ExpiryVerdict.EXPIRED

    def test_classify_near_expiry(self):
        """测试10天后过期的凭据"""
        record = make_record(NOW + timedelta(days=10))
        assert self.calculator.classify(record, 14) == ExpiryVerdict.NEAR_EXPIRY

    def test_classify_healthy(self):
        """测试30天后过期的凭据"""
        record = make_record(NOW + timedelta(days=30))
        assert self.calculator.classify(record, 14) == ExpiryVerdict.HEALTHY

    def test_classify_same_day_is_expired(self):
        """测试当天过期的凭据判定为已过期"""
        record = make_record(NOW + timedelta(hours=3))
        assert self.calculator.classify(record, 14) == ExpiryVerdict.EXPIRED

    def test_classify_uses_warning_days_by_default(self):
        """测试未指定阈值时使用 warning_days"""
        record = make_record(NOW + timedelta(days=14))
        assert self.calculator.classify(record) == ExpiryVerdict.NEAR_EXPIRY

        record = make_record(NOW + timedelta(days=15))
        assert self.calculator.classify(record) == ExpiryVerdict.HEALTHY

    def test_classify_zero_threshold(self):
        """测试阈值为0时只通知已过期"""
        assert ExpiryCalculator.classify_days(0, 0) == ExpiryVerdict.EXPIRED
        assert ExpiryCalculator.classify_days(1, 0) == ExpiryVerdict.HEALTHY

    def test_classify_days_boundaries(self):
        """测试边界值"""
        assert ExpiryCalculator.classify_days(0, 14) == ExpiryVerdict.EXPIRED
        assert ExpiryCalculator.classify_days(1, 14) == ExpiryVerdict.NEAR_EXPIRY
        assert ExpiryCalculator.classify_days(14, 14) == ExpiryVerdict.NEAR_EXPIRY
        assert ExpiryCalculator.classify_days(15, 14) == ExpiryVerdict.HEALTHY

    @pytest.mark.parametrize("threshold", [0, 1, 7, 14, 30])
    def test_classify_days_partition(self, threshold):
        """测试每个剩余天数恰好对应一个状态"""
        for days in range(-40, 60):
            verdict = ExpiryCalculator.classify_days(days, threshold)
            if days <= 0:
                assert verdict == ExpiryVerdict.EXPIRED
            elif days <= threshold:
                assert verdict == ExpiryVerdict.NEAR_EXPIRY
            else:
                assert verdict == ExpiryVerdict.HEALTHY

    def test_negative_threshold_rejected(self):
        """测试负数阈值"""
        with pytest.raises(ValueError):
            ExpiryCalculator.classify_days(5, -1)

        with pytest.raises(ValueError):
            ExpiryCalculator(warning_days=-3)

    def test_get_expiry_summary(self):
        """测试获取过期状态摘要"""
        results = [
            ArtifactResult(TrackedArtifact.PUSH_CERTIFICATE, verdict=ExpiryVerdict.EXPIRED),
            ArtifactResult(TrackedArtifact.ENROLLMENT_TOKEN, verdict=ExpiryVerdict.NEAR_EXPIRY),
            ArtifactResult(TrackedArtifact.PURCHASE_TOKEN),
        ]

        summary = self.calculator.get_expiry_summary(results)

        assert "总计: 3 个凭据" in summary
        assert "已过期: 1 个" in summary
        assert "即将过期(14天内): 1 个" in summary
        assert "未配置: 1 个" in summary
        assert "健康" not in summary

    def test_is_skipped_only_without_outcome(self):
        """测试只有没有记录、没有判定且没有错误时才算未配置"""
        assert ArtifactResult(TrackedArtifact.PURCHASE_TOKEN).is_skipped is True
        assert ArtifactResult(TrackedArtifact.PUSH_CERTIFICATE, verdict=ExpiryVerdict.EXPIRED).is_skipped is False
        assert ArtifactResult(TrackedArtifact.ENROLLMENT_TOKEN, error_message="HTTP 503").is_skipped is False
