"""
日志服务
"""
import os
import logging
import traceback
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from ..interfaces import LoggerServiceInterface
from ..models import GroupReport, Severity, SiteClassification, Status, WatchGroup
from .error_handler import NetworkErrorHandler


class LoggerService(LoggerServiceInterface):
    """日志服务实现"""

    def __init__(self, logger_name: str = "cert_watch", log_level: Optional[str] = None):
        """
        初始化日志服务

        Args:
            logger_name: 日志器名称
            log_level: 日志级别，如果为None则从环境变量读取
        """
        self.logger_name = logger_name
        self.log_level = log_level or os.getenv('LOG_LEVEL', 'INFO')
        self.error_handler = NetworkErrorHandler()

        # 配置日志器
        self.logger = logging.getLogger(logger_name)
        self._configure_logger()

        self.reset_stats()

    def _configure_logger(self):
        """配置日志器"""
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        self.logger.setLevel(level)

        # 避免重复添加处理器
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(level)

            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)

            self.logger.addHandler(handler)

        # 防止日志传播到根日志器
        self.logger.propagate = False

    def log_sweep_start(self, group_count: int):
        """
        记录巡检开始

        Args:
            group_count: 监控组数量
        """
        self.execution_stats['start_time'] = datetime.now(timezone.utc)
        self.execution_stats['total_groups'] = group_count

        self.logger.info(f"开始证书巡检，共 {group_count} 个监控组")

    def log_group_start(self, group: WatchGroup):
        """
        记录监控组开始检查

        Args:
            group: 监控组
        """
        self.logger.info(
            f"检查监控组: {group.name}, 站点数: {len(group.sites)}, 告警阈值: {group.redline} 天"
        )

    def log_site_result(self, classification: SiteClassification):
        """
        记录站点检查结果

        Args:
            classification: 分类结果
        """
        self.execution_stats['total_sites'] += 1
        site = classification.site

        if classification.status is Status.UNREACHABLE:
            self.execution_stats['failed_checks'] += 1
            if classification.error is None:
                self.logger.error(f"证书检查失败 - 站点: {site}, 错误: {classification.error_message}")
                return

            error_info = self._record_error(site, classification.error)
            self.logger.error(
                f"证书检查失败 - 站点: {site}, 错误: {classification.error_message}"
                f"（建议: {error_info['suggested_action']}）"
            )
            return

        self.execution_stats['successful_checks'] += 1
        expiry = classification.expiry_date.strftime('%Y-%m-%d')

        if classification.status is Status.EXPIRED:
            self.logger.warning(
                f"证书已过期 - 站点: {site}, 过期时间: {expiry}, "
                f"剩余天数: {classification.days_left} 天"
            )
        elif classification.status is Status.EXPIRING_SOON:
            self.logger.warning(
                f"证书即将过期 - 站点: {site}, 过期时间: {expiry}, "
                f"剩余天数: {classification.days_left} 天"
            )
        else:
            self.logger.info(
                f"证书正常 - 站点: {site}, 过期时间: {expiry}, "
                f"剩余天数: {classification.days_left} 天"
            )

    def log_error(self, site: str, error: Exception):
        """
        记录错误信息

        Args:
            site: 站点
            error: 异常对象
        """
        error_info = self._record_error(site, error)

        self.logger.error(
            f"站点 {site} 检查时发生错误: {error_info['error_type']}: {error_info['error_message']}"
            f"（建议: {error_info['suggested_action']}）"
        )

    def _record_error(self, site: str, error: Exception) -> Dict[str, Any]:
        """
        生成错误描述并计入执行统计

        Args:
            site: 站点
            error: 异常对象

        Returns:
            Dict[str, Any]: 错误描述
        """
        error_info = self.error_handler.describe(site, error)
        self.execution_stats['errors'].append(error_info)

        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        self.logger.debug(f"站点 {site} 错误堆栈跟踪:\n{stack}")
        return error_info

    def log_report(self, report: GroupReport):
        """
        记录监控组报告

        Args:
            report: 监控组报告
        """
        if report.alerts:
            self.execution_stats['total_alerts'] += report.problem_count
            self.logger.info(f"监控组 {report.group_name} 发现 {report.problem_count} 个问题，准备发送告警")
        else:
            self.logger.info(f"监控组 {report.group_name} 无告警")

    def log_notification_sent(self, group_name: str, severity: Severity, success: bool,
                              error: Optional[Exception] = None):
        """
        记录通知发送状态

        Args:
            group_name: 监控组名称
            severity: 通知级别
            success: 是否发送成功
            error: 发送失败时的异常
        """
        if success:
            self.logger.info(f"监控组 {group_name} 通知发送成功，级别: {severity.value}")
        else:
            self.execution_stats['failed_deliveries'] += 1
            self.logger.error(f"监控组 {group_name} 通知发送失败，级别: {severity.value}，错误: {error}")

    def log_sweep_end(self):
        """记录巡检结束"""
        self.execution_stats['end_time'] = datetime.now(timezone.utc)
        self.logger.info("证书巡检完成")

    def log_configuration_info(self, config: Dict[str, Any]):
        """
        记录配置信息

        Args:
            config: 配置信息字典
        """
        safe_config = self._sanitize_config(config)

        self.logger.info("系统配置信息:")
        for key, value in safe_config.items():
            self.logger.info(f"  {key}: {value}")

    def _sanitize_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        清理配置信息中的敏感数据

        Args:
            config: 原始配置

        Returns:
            Dict[str, Any]: 清理后的配置
        """
        safe_config = {}
        for key, value in config.items():
            key_lower = key.lower()

            is_sensitive = (
                key_lower in {'password', 'secret', 'token', 'key', 'sns_topic_arn'} or
                key_lower.endswith('_key') or
                key_lower.endswith('_secret') or
                key_lower.endswith('_password') or
                key_lower.endswith('_token')
            )

            if is_sensitive and isinstance(value, str) and value:
                if value.startswith('arn:'):
                    # ARN只显示分区、资源名
                    parts = value.split(':')
                    if len(parts) >= 6:
                        safe_value = f"{':'.join(parts[:3])}:***:{parts[-1]}"
                    else:
                        safe_value = "***"
                else:
                    safe_value = value[:3] + "***" if len(value) > 3 else "***"
                safe_config[key] = safe_value
            else:
                safe_config[key] = value

        return safe_config

    def get_execution_summary(self) -> Dict[str, Any]:
        """
        获取执行摘要

        Returns:
            Dict[str, Any]: 执行摘要信息
        """
        stats = self.execution_stats
        duration = 0
        if stats['start_time'] and stats['end_time']:
            duration = (stats['end_time'] - stats['start_time']).total_seconds()

        return {
            'start_time': stats['start_time'].isoformat() if stats['start_time'] else None,
            'end_time': stats['end_time'].isoformat() if stats['end_time'] else None,
            'duration_seconds': duration,
            'total_groups': stats['total_groups'],
            'total_sites': stats['total_sites'],
            'successful_checks': stats['successful_checks'],
            'failed_checks': stats['failed_checks'],
            'total_alerts': stats['total_alerts'],
            'failed_deliveries': stats['failed_deliveries'],
            'success_rate': (
                stats['successful_checks'] / stats['total_sites']
                if stats['total_sites'] > 0 else 0
            ),
            'error_statistics': self.error_handler.get_error_statistics(stats['errors']),
            'errors': stats['errors']
        }

    def log_execution_summary(self):
        """记录执行摘要"""
        summary = self.get_execution_summary()

        self.logger.info("=" * 50)
        self.logger.info("执行摘要")
        self.logger.info("=" * 50)
        self.logger.info(f"执行时长: {summary['duration_seconds']:.2f} 秒")
        self.logger.info(f"监控组数: {summary['total_groups']}")
        self.logger.info(f"站点总数: {summary['total_sites']}")
        self.logger.info(f"成功检查: {summary['successful_checks']}")
        self.logger.info(f"失败检查: {summary['failed_checks']}")
        self.logger.info(f"告警条数: {summary['total_alerts']}")
        self.logger.info(f"通知失败: {summary['failed_deliveries']}")

        error_statistics = summary['error_statistics']
        if error_statistics['total_errors']:
            self.logger.info(
                f"错误数量: {error_statistics['total_errors']}，"
                f"最常见: {error_statistics['most_common_error']} "
                f"({error_statistics['most_common_error_count']} 次)"
            )

        self.logger.info("=" * 50)

    def reset_stats(self):
        """重置执行统计"""
        self.execution_stats = {
            'start_time': None,
            'end_time': None,
            'total_groups': 0,
            'total_sites': 0,
            'successful_checks': 0,
            'failed_checks': 0,
            'total_alerts': 0,
            'failed_deliveries': 0,
            'errors': []
        }
