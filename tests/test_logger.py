"""
日志服务测试
"""
import pytest
import os
import logging
from unittest.mock import patch
from datetime import datetime, timezone, timedelta
from io import StringIO

from cert_watch.services.logger import LoggerService
from cert_watch.services.error_handler import ProbeError, DeliveryError
from cert_watch.models import GroupReport, Severity, SiteClassification, Status, WatchGroup


NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestLoggerService:
    """日志服务测试类"""

    def setup_method(self):
        """测试前准备"""
        self.logger_service = LoggerService(logger_name="test_logger")

        # 创建一个字符串流来捕获日志输出
        self.log_stream = StringIO()
        handler = logging.StreamHandler(self.log_stream)
        handler.setFormatter(logging.Formatter('%(levelname)s - %(message)s'))

        self.logger_service.logger.handlers.clear()
        self.logger_service.logger.addHandler(handler)
        self.logger_service.logger.setLevel(logging.DEBUG)

    def teardown_method(self):
        """测试后清理"""
        self.logger_service.reset_stats()

    def get_log_output(self) -> str:
        """获取日志输出"""
        return self.log_stream.getvalue()

    @patch.dict(os.environ, {}, clear=True)
    def test_init_default_config(self):
        """测试默认配置初始化"""
        service = LoggerService()

        assert service.logger_name == "cert_watch"
        assert service.log_level == "INFO"
        assert service.logger.propagate is False

    @patch.dict(os.environ, {'LOG_LEVEL': 'DEBUG'})
    def test_init_with_env_log_level(self):
        """测试从环境变量读取日志级别"""
        assert LoggerService(logger_name="env_logger").log_level == "DEBUG"

    def test_handlers_not_duplicated(self):
        """测试重复初始化不会重复添加处理器"""
        LoggerService(logger_name="dup_logger")
        service = LoggerService(logger_name="dup_logger")

        assert len(service.logger.handlers) == 1

    def test_log_sweep_and_group_start(self):
        self.logger_service.log_sweep_start(2)
        self.logger_service.log_group_start(WatchGroup(name="prod", redline=7, sites=("a", "b")))

        output = self.get_log_output()
        assert "共 2 个监控组" in output
        assert "检查监控组: prod, 站点数: 2, 告警阈值: 7 天" in output
        assert self.logger_service.execution_stats['total_groups'] == 2

    def test_log_site_results(self):
        """测试不同状态的站点日志"""
        expiry = NOW + timedelta(days=4)
        self.logger_service.log_site_result(SiteClassification("a", Status.HEALTHY, 90, expiry))
        self.logger_service.log_site_result(SiteClassification("b", Status.EXPIRING_SOON, 4, expiry))
        self.logger_service.log_site_result(SiteClassification("c", Status.EXPIRED, -1, expiry))
        self.logger_service.log_site_result(SiteClassification("d", Status.UNREACHABLE, error_message="refused"))

        output = self.get_log_output()
        assert "INFO - 证书正常 - 站点: a" in output
        assert "WARNING - 证书即将过期 - 站点: b" in output
        assert "WARNING - 证书已过期 - 站点: c" in output
        assert "ERROR - 证书检查失败 - 站点: d, 错误: refused" in output

        stats = self.logger_service.execution_stats
        assert stats['total_sites'] == 4
        assert stats['successful_checks'] == 3
        assert stats['failed_checks'] == 1

    def test_unreachable_site_records_error_statistics(self):
        """测试不可达站点的异常计入错误统计并给出处理建议"""
        error = ProbeError("d.example", "ConnectionRefusedError: refused")
        error.__cause__ = ConnectionRefusedError("refused")
        classification = SiteClassification(
            "d.example", Status.UNREACHABLE, error_message=error.message, error=error
        )

        self.logger_service.log_site_result(classification)

        output = self.get_log_output()
        assert "证书检查失败 - 站点: d.example" in output
        assert "检查目标服务器是否运行，端口是否正确" in output

        summary = self.logger_service.get_execution_summary()
        assert summary['failed_checks'] == 1
        assert summary['error_statistics']['total_errors'] == 1
        assert summary['error_statistics']['error_types'] == {'ConnectionRefusedError': 1}

    def test_log_error_records_statistics(self):
        error = ProbeError("a.example", "refused")
        error.__cause__ = ConnectionRefusedError("refused")

        self.logger_service.log_error("a.example", error)

        assert "ConnectionRefusedError" in self.get_log_output()
        assert self.logger_service.execution_stats['errors'][0]['error_type'] == "ConnectionRefusedError"

    def test_log_report(self):
        report = GroupReport(
            group_name="prod",
            report_date=NOW,
            site_count=2,
            message="msg",
            severity=Severity.WARNING,
            alerts=["x", "y"]
        )

        self.logger_service.log_report(report)

        assert "监控组 prod 发现 2 个问题" in self.get_log_output()
        assert self.logger_service.execution_stats['total_alerts'] == 2

    def test_log_notification_sent(self):
        self.logger_service.log_notification_sent("prod", Severity.INFO, True)
        self.logger_service.log_notification_sent("prod", Severity.WARNING, False, DeliveryError("wxwork", "500"))

        output = self.get_log_output()
        assert "监控组 prod 通知发送成功，级别: info" in output
        assert "ERROR - 监控组 prod 通知发送失败，级别: warning，错误: wxwork: 500" in output
        assert self.logger_service.execution_stats['failed_deliveries'] == 1

    def test_sanitize_config(self):
        """测试敏感配置脱敏"""
        safe = self.logger_service._sanitize_config({
            'wxwork_token': 'abcdef123456',
            'sns_topic_arn': 'arn:aws:sns:us-east-1:123456789012:alerts',
            'log_level': 'INFO',
            'empty_token': ''
        })

        assert safe['wxwork_token'] == 'abc***'
        assert safe['sns_topic_arn'] == 'arn:aws:sns:***:alerts'
        assert safe['log_level'] == 'INFO'
        assert safe['empty_token'] == ''

    def test_execution_summary(self):
        self.logger_service.log_sweep_start(1)
        self.logger_service.log_site_result(SiteClassification("a", Status.HEALTHY, 90, NOW))
        self.logger_service.log_site_result(SiteClassification("b", Status.UNREACHABLE, error_message="x"))
        self.logger_service.log_sweep_end()

        summary = self.logger_service.get_execution_summary()

        assert summary['total_groups'] == 1
        assert summary['total_sites'] == 2
        assert summary['success_rate'] == pytest.approx(0.5)
        assert summary['duration_seconds'] >= 0

        self.logger_service.log_execution_summary()
        assert "执行摘要" in self.get_log_output()

    def test_reset_stats(self):
        self.logger_service.log_sweep_start(3)
        self.logger_service.reset_stats()

        assert self.logger_service.execution_stats['total_groups'] == 0
        assert self.logger_service.execution_stats['start_time'] is None
