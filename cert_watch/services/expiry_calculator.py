"""
证书过期计算服务
"""
from datetime import datetime
from typing import List
from ..models import SiteClassification, SiteProbeResult, Status

DATE_FORMAT = '%Y-%m-%d'


class ExpiryCalculator:
    """证书过期计算器"""

    def __init__(self, redline: int):
        """
        初始化过期计算器

        Args:
            redline: 提前警告天数，剩余天数不超过该值时视为即将过期
        """
        if redline < 0:
            raise ValueError(f"redline 不能为负数: {redline}")
        self.redline = redline

    @staticmethod
    def calculate_days_left(expiry_date: datetime, now: datetime) -> int:
        """
        计算距离过期的天数

        按小时数除以24后向零截断，不足一天的部分直接舍去。
        例如还剩12小时记为0天，已过期12小时同样记为0天。

        Args:
            expiry_date: 过期时间
            now: 当前时间

        Returns:
            int: 剩余天数（负数表示已过期）
        """
        hours = (expiry_date - now).total_seconds() / 3600
        return int(hours / 24)

    def classify_days(self, days_left: int) -> Status:
        """
        根据剩余天数判断状态

        Args:
            days_left: 剩余天数

        Returns:
            Status: 证书状态
        """
        if days_left < 0:
            return Status.EXPIRED
        if days_left <= self.redline:
            return Status.EXPIRING_SOON
        return Status.HEALTHY

    def classify(self, result: SiteProbeResult, now: datetime) -> SiteClassification:
        """
        对单个探测结果进行分类

        Args:
            result: 探测结果
            now: 当前时间

        Returns:
            SiteClassification: 分类结果
        """
        if not result.is_reachable:
            return SiteClassification(
                site=result.site,
                status=Status.UNREACHABLE,
                error_message=result.error_message,
                error=result.error
            )

        days_left = self.calculate_days_left(result.expiry_date, now)
        return SiteClassification(
            site=result.site,
            status=self.classify_days(days_left),
            days_left=days_left,
            expiry_date=result.expiry_date
        )

    @staticmethod
    def format_alert(classification: SiteClassification) -> str:
        """
        生成告警行，健康状态返回空字符串

        Args:
            classification: 分类结果

        Returns:
            str: 告警文本
        """
        status = classification.status
        if status is Status.UNREACHABLE:
            return f"❗ 检测失败: {classification.site}"
        if status is Status.EXPIRED:
            return (
                f"❗ 证书已过期: {classification.site} "
                f"(到期日: {classification.expiry_date.strftime(DATE_FORMAT)})"
            )
        if status is Status.EXPIRING_SOON:
            return (
                f"⚠️ 证书即将过期: {classification.site} 还有 {classification.days_left} 天 "
                f"(到期日: {classification.expiry_date.strftime(DATE_FORMAT)})"
            )
        return ""

    def build_alerts(self, classifications: List[SiteClassification]) -> List[str]:
        """
        按站点顺序生成告警列表

        Args:
            classifications: 分类结果列表

        Returns:
            List[str]: 告警文本列表
        """
        return [self.format_alert(c) for c in classifications if c.is_alert]

    def categorize(self, classifications: List[SiteClassification]) -> dict:
        """
        按状态对分类结果分组

        Args:
            classifications: 分类结果列表

        Returns:
            dict: 分组结果
        """
        categorized = {status: [] for status in Status}
        for classification in classifications:
            categorized[classification.status].append(classification)

        return {
            'total': len(classifications),
            'healthy': categorized[Status.HEALTHY],
            'expiring_soon': categorized[Status.EXPIRING_SOON],
            'expired': categorized[Status.EXPIRED],
            'unreachable': categorized[Status.UNREACHABLE]
        }

    def get_expiry_summary(self, classifications: List[SiteClassification]) -> str:
        """
        获取过期状态摘要

        Args:
            classifications: 分类结果列表

        Returns:
            str: 摘要信息
        """
        categorized = self.categorize(classifications)

        summary_parts = [f"总计: {categorized['total']} 个站点"]

        if categorized['expired']:
            summary_parts.append(f"已过期: {len(categorized['expired'])} 个")

        if categorized['expiring_soon']:
            summary_parts.append(f"即将过期({self.redline}天内): {len(categorized['expiring_soon'])} 个")

        if categorized['unreachable']:
            summary_parts.append(f"检测失败: {len(categorized['unreachable'])} 个")

        if categorized['healthy']:
            summary_parts.append(f"健康: {len(categorized['healthy'])} 个")

        return ", ".join(summary_parts)
