"""
服务接口定义
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from .models import (
    GroupReport,
    Severity,
    SiteClassification,
    SiteProbeResult,
    WatchConfig,
    WatchGroup,
)


class ConfigLoaderInterface(ABC):
    """配置加载器接口"""

    @abstractmethod
    def load(self, path: str) -> WatchConfig:
        """加载并校验配置文件"""
        pass


class CertificateProberInterface(ABC):
    """证书探测器接口"""

    @abstractmethod
    def get_expiration_date(self, site: str) -> datetime:
        """读取站点叶子证书的过期时间，失败时抛出 ProbeError"""
        pass

    @abstractmethod
    def probe(self, site: str) -> SiteProbeResult:
        """探测单个站点，失败结果以 SiteProbeResult 返回"""
        pass


class NotifierInterface(ABC):
    """通知发送接口"""

    @abstractmethod
    def send(self, message: str, severity: Severity) -> None:
        """发送通知，失败时抛出 DeliveryError"""
        pass


class LoggerServiceInterface(ABC):
    """日志服务接口"""

    @abstractmethod
    def log_sweep_start(self, group_count: int):
        """记录巡检开始"""
        pass

    @abstractmethod
    def log_group_start(self, group: WatchGroup):
        """记录监控组开始检查"""
        pass

    @abstractmethod
    def log_site_result(self, classification: SiteClassification):
        """记录站点检查结果"""
        pass

    @abstractmethod
    def log_error(self, site: str, error: Exception):
        """记录错误信息"""
        pass

    @abstractmethod
    def log_report(self, report: GroupReport):
        """记录监控组报告"""
        pass

    @abstractmethod
    def log_notification_sent(self, group_name: str, severity: Severity, success: bool,
                              error: Optional[Exception] = None):
        """记录通知发送状态"""
        pass

    @abstractmethod
    def log_sweep_end(self):
        """记录巡检结束"""
        pass

    @abstractmethod
    def log_execution_summary(self):
        """记录执行摘要"""
        pass
