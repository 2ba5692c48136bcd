"""
监控组巡检服务
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, List, Optional
import logging
import time

from ..interfaces import CertificateProberInterface, LoggerServiceInterface, NotifierInterface
from ..models import (
    GroupReport,
    Severity,
    SiteProbeResult,
    SweepResult,
    WatchGroup,
)
from .cert_prober import CertificateProber
from .error_handler import DeliveryError
from .expiry_calculator import DATE_FORMAT, ExpiryCalculator
from .logger import LoggerService
from .notifier_factory import build_notifier

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class GroupEvaluator:
    """监控组巡检器：探测、分类、汇总并发送每组一条通知"""

    def __init__(self,
                 prober: Optional[CertificateProberInterface] = None,
                 logger_service: Optional[LoggerServiceInterface] = None,
                 clock: Callable[[], datetime] = utc_now,
                 notifier_factory: Callable[[WatchGroup], NotifierInterface] = build_notifier,
                 workers: int = 1):
        """
        初始化巡检器

        Args:
            prober: 证书探测器
            logger_service: 日志服务
            clock: 当前时间来源，每个监控组只读取一次；返回不带时区的时间时按本地时间换算为UTC
            notifier_factory: 根据监控组创建通知服务
            workers: 组内并发探测线程数，1 表示顺序探测
        """
        self.prober = prober or CertificateProber()
        self.logger_service = logger_service or LoggerService()
        self.clock = clock
        self.notifier_factory = notifier_factory
        self.workers = max(1, workers)

    def evaluate(self, group: WatchGroup, now: Optional[datetime] = None) -> GroupReport:
        """
        巡检单个监控组并生成报告

        Args:
            group: 监控组
            now: 参考时间，为None时从 clock 读取，不带时区时按本地时间处理

        Returns:
            GroupReport: 监控组报告
        """
        if now is None:
            now = self.clock()
        if now.tzinfo is None:
            now = now.astimezone(timezone.utc)

        self.logger_service.log_group_start(group)
        calculator = ExpiryCalculator(group.redline)

        classifications = []
        for result in self._probe_sites(group.sites):
            classification = calculator.classify(result, now)
            self.logger_service.log_site_result(classification)
            classifications.append(classification)

        alerts = calculator.build_alerts(classifications)
        logger.debug(calculator.get_expiry_summary(classifications))

        report = GroupReport(
            group_name=group.name,
            report_date=now,
            site_count=len(group.sites),
            message=self.format_message(group.name, now, len(group.sites), alerts),
            severity=Severity.WARNING if alerts else Severity.INFO,
            classifications=classifications,
            alerts=alerts
        )
        self.logger_service.log_report(report)
        return report

    @staticmethod
    def format_message(group_name: str, now: datetime, site_count: int, alerts: List[str]) -> str:
        """
        生成通知文本

        Args:
            group_name: 监控组名称
            now: 报告时间
            site_count: 站点总数
            alerts: 告警列表

        Returns:
            str: 通知文本
        """
        date = now.strftime(DATE_FORMAT)
        if not alerts:
            return f"✅ [{date}] 组 {group_name} 的证书监控正常，共 {site_count} 个"

        return (
            f"🚨 [{date}] 组 {group_name} 的证书监控发现 {len(alerts)} 个问题:\n"
            + "\n".join(alerts)
        )

    def _probe_sites(self, sites) -> List[SiteProbeResult]:
        """
        探测全部站点，结果顺序与站点列表一致

        Args:
            sites: 站点列表

        Returns:
            List[SiteProbeResult]: 探测结果
        """
        if self.workers == 1 or len(sites) <= 1:
            return [self._probe_site(site) for site in sites]

        with ThreadPoolExecutor(max_workers=min(self.workers, len(sites))) as executor:
            futures = [executor.submit(self._probe_site, site) for site in sites]
            return [future.result() for future in futures]

    def _probe_site(self, site: str) -> SiteProbeResult:
        logger.debug(f"检查站点: {site}")
        try:
            return self.prober.probe(site)
        except Exception as e:
            # 单个站点的意外错误不影响其他站点，错误在 log_site_result 中记录
            return SiteProbeResult(site=site, error_message=f"{type(e).__name__}: {e}", error=e)

    def deliver(self, report: GroupReport, group: WatchGroup) -> bool:
        """
        发送监控组报告，每组每次巡检只调用一次

        Args:
            report: 监控组报告
            group: 监控组

        Returns:
            bool: 是否发送成功
        """
        try:
            notifier = self.notifier_factory(group)
            notifier.send(report.message, report.severity)
        except DeliveryError as e:
            self.logger_service.log_notification_sent(group.name, report.severity, False, e)
            return False

        self.logger_service.log_notification_sent(group.name, report.severity, True)
        return True

    def run_sweep(self, groups: List[WatchGroup]) -> SweepResult:
        """
        依次巡检全部监控组

        Args:
            groups: 监控组列表

        Returns:
            SweepResult: 巡检结果
        """
        start_time = time.monotonic()
        self.logger_service.log_sweep_start(len(groups))

        reports = []
        delivered_groups = []
        failed_deliveries = []

        for group in groups:
            report = self.evaluate(group)
            reports.append(report)

            if self.deliver(report, group):
                delivered_groups.append(group.name)
            else:
                failed_deliveries.append(group.name)

        self.logger_service.log_sweep_end()
        self.logger_service.log_execution_summary()

        return SweepResult(
            total_groups=len(groups),
            total_sites=sum(len(group.sites) for group in groups),
            reports=reports,
            delivered_groups=delivered_groups,
            failed_deliveries=failed_deliveries,
            execution_time=time.monotonic() - start_time
        )
