"""
AWS Lambda函数入口点
"""
import os
from typing import Dict, Any, Optional
from datetime import datetime, timezone

from .services.cert_prober import CertificateProber
from .services.config_loader import DEFAULT_CONFIG_PATH, ConfigLoader
from .services.error_handler import ConfigError
from .services.group_evaluator import GroupEvaluator
from .services.logger import LoggerService
from .models import SweepResult, Status


class CertWatchMonitor:
    """证书巡检主类"""

    def __init__(self, config_path: Optional[str] = None):
        """
        初始化巡检器

        Args:
            config_path: 配置文件路径，为None时从环境变量 CERT_WATCH_CONFIG 读取
        """
        self.config_path = config_path or os.getenv('CERT_WATCH_CONFIG', DEFAULT_CONFIG_PATH)
        self.logger_service = LoggerService()
        self.config_loader = ConfigLoader()
        self.evaluator = GroupEvaluator(
            prober=CertificateProber(timeout=float(os.getenv('PROBE_TIMEOUT', '10'))),
            logger_service=self.logger_service,
            workers=int(os.getenv('PROBE_WORKERS', '1'))
        )

        self._log_configuration()

    def _log_configuration(self):
        """记录系统配置信息"""
        config = {
            'config_path': self.config_path,
            'log_level': self.logger_service.log_level,
            'probe_timeout': self.evaluator.prober.timeout,
            'probe_workers': self.evaluator.workers,
            'lambda_function_name': os.getenv('AWS_LAMBDA_FUNCTION_NAME', 'unknown')
        }

        self.logger_service.log_configuration_info(config)

    def execute(self) -> SweepResult:
        """
        加载配置并执行一次巡检

        Returns:
            SweepResult: 巡检结果

        Raises:
            ConfigError: 配置文件缺失或无效
        """
        config = self.config_loader.load(self.config_path)
        return self.evaluator.run_sweep(config.groups)


def build_response_body(result: SweepResult) -> Dict[str, Any]:
    """
    构建巡检结果摘要

    Args:
        result: 巡检结果

    Returns:
        dict: 响应体
    """
    groups = []
    for report in result.reports:
        statuses = [c.status for c in report.classifications]
        groups.append({
            'name': report.group_name,
            'severity': report.severity.value,
            'site_count': report.site_count,
            'problems': report.problem_count,
            'expired': statuses.count(Status.EXPIRED),
            'expiring_soon': statuses.count(Status.EXPIRING_SOON),
            'unreachable': statuses.count(Status.UNREACHABLE),
            'delivered': report.group_name not in result.failed_deliveries
        })

    return {
        'message': 'Certificate sweep completed',
        'summary': {
            'total_groups': result.total_groups,
            'total_sites': result.total_sites,
            'failed_deliveries': len(result.failed_deliveries),
            'execution_time_seconds': result.execution_time
        },
        'groups': groups,
        'timestamp': datetime.now(timezone.utc).isoformat()
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda函数入口点

    Args:
        event: EventBridge触发事件，可通过 config_path 指定配置文件
        context: Lambda运行时上下文

    Returns:
        dict: 执行结果和统计信息
    """
    config_path = (event or {}).get('config_path')

    try:
        result = CertWatchMonitor(config_path).execute()
    except ConfigError as e:
        return {
            'statusCode': 500,
            'body': {
                'message': 'Certificate sweep failed to load configuration',
                'errors': e.errors,
                'timestamp': datetime.now(timezone.utc).isoformat()
            }
        }

    return {
        'statusCode': 200,
        'body': build_response_body(result)
    }
