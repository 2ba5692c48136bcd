"""
数据模型定义
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Tuple


@dataclass(frozen=True)
class WatchGroup:
    """监控组配置（一次巡检内不可变）"""
    name: str
    redline: int
    sites: Tuple[str, ...] = ()
    wxwork_token: str = ""
    sns_topic_arn: str = ""
    interval: int = 0

    @property
    def has_notify_target(self) -> bool:
        """是否配置了任一通知目标"""
        return bool(self.wxwork_token or self.sns_topic_arn)


@dataclass
class WatchConfig:
    """配置文件内容"""
    version: int
    groups: List[WatchGroup] = field(default_factory=list)


@dataclass
class SiteProbeResult:
    """单个站点的探测结果"""
    site: str
    expiry_date: Optional[datetime] = None
    error_message: Optional[str] = None
    error: Optional[Exception] = field(default=None, repr=False, compare=False)

    @property
    def is_reachable(self) -> bool:
        """是否成功读取到证书过期时间"""
        return self.expiry_date is not None and self.error_message is None


class Status(Enum):
    """站点证书状态"""
    HEALTHY = "healthy"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"
    UNREACHABLE = "unreachable"


class Severity(Enum):
    """通知级别"""
    INFO = "info"
    WARNING = "warning"


@dataclass
class SiteClassification:
    """站点分类结果"""
    site: str
    status: Status
    days_left: Optional[int] = None
    expiry_date: Optional[datetime] = None
    error_message: Optional[str] = None
    error: Optional[Exception] = field(default=None, repr=False, compare=False)

    @property
    def is_alert(self) -> bool:
        return self.status is not Status.HEALTHY


@dataclass
class GroupReport:
    """单个监控组的巡检报告"""
    group_name: str
    report_date: datetime
    site_count: int
    message: str
    severity: Severity
    classifications: List[SiteClassification] = field(default_factory=list)
    alerts: List[str] = field(default_factory=list)

    @property
    def problem_count(self) -> int:
        return len(self.alerts)


@dataclass
class SweepResult:
    """一次巡检的统计结果"""
    total_groups: int
    total_sites: int
    reports: List[GroupReport]
    delivered_groups: List[str]
    failed_deliveries: List[str]
    execution_time: float

    @property
    def all_delivered(self) -> bool:
        return not self.failed_deliveries
