"""
错误定义与处理服务
"""
import socket
import ssl
from typing import Any, Dict, List
from datetime import datetime, timezone
import logging


class CertWatchError(Exception):
    """证书监控错误基类"""


class ProbeError(CertWatchError):
    """站点探测失败（连接、握手失败或未获取到证书）"""

    def __init__(self, site: str, message: str):
        super().__init__(f"{site}: {message}")
        self.site = site
        self.message = message


class DeliveryError(CertWatchError):
    """通知发送失败"""

    def __init__(self, channel: str, message: str):
        super().__init__(f"{channel}: {message}")
        self.channel = channel
        self.message = message


class ConfigError(CertWatchError):
    """配置文件缺失或无效"""

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class NetworkErrorHandler:
    """网络错误处理器"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def root_cause(error: BaseException) -> BaseException:
        """
        沿异常链找到最底层的原因

        Args:
            error: 异常对象

        Returns:
            BaseException: 最初引发的异常
        """
        seen = set()
        while error.__cause__ is not None and id(error) not in seen:
            seen.add(id(error))
            error = error.__cause__
        return error

    def describe(self, site: str, error: Exception) -> Dict[str, Any]:
        """
        生成探测错误的描述信息

        Args:
            site: 站点
            error: 异常对象

        Returns:
            Dict[str, Any]: 错误描述
        """
        cause = self.root_cause(error)
        error_info = {
            'site': site,
            'error_type': type(cause).__name__,
            'error_message': str(cause),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'suggested_action': self._get_suggested_action(cause)
        }

        self.logger.debug(f"站点 {site} 探测错误: {error_info['error_type']}: {error_info['error_message']}")

        return error_info

    def _get_suggested_action(self, error: BaseException) -> str:
        """
        获取错误的建议处理方案

        Args:
            error: 异常对象

        Returns:
            str: 建议的处理方案
        """
        error_message = str(error).lower()

        if isinstance(error, socket.timeout):
            return "检查网络连接，考虑增加超时时间"
        elif isinstance(error, socket.gaierror):
            return "检查域名是否正确，DNS服务器是否可用"
        elif isinstance(error, ConnectionRefusedError):
            return "检查目标服务器是否运行，端口是否正确"
        elif isinstance(error, ssl.SSLError):
            if 'handshake failure' in error_message:
                return "TLS握手失败，检查SSL/TLS版本兼容性"
            return "TLS连接问题，检查服务器SSL配置"
        elif 'no certificate' in error_message:
            return "服务器未提供证书，检查端口是否为TLS服务"
        elif 'network is unreachable' in error_message:
            return "网络不可达，检查网络连接和路由"
        elif 'no route to host' in error_message:
            return "无法路由到主机，检查防火墙和网络配置"
        else:
            return "检查网络连接和服务器状态"

    def get_error_statistics(self, error_list: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        获取错误统计信息

        Args:
            error_list: 错误信息列表

        Returns:
            Dict[str, Any]: 错误统计
        """
        if not error_list:
            return {
                'total_errors': 0,
                'error_types': {},
                'most_common_error': None,
                'most_common_error_count': 0
            }

        error_types = {}
        for error_info in error_list:
            error_type = error_info.get('error_type', 'Unknown')
            error_types[error_type] = error_types.get(error_type, 0) + 1

        most_common_error = max(error_types.items(), key=lambda x: x[1])

        return {
            'total_errors': len(error_list),
            'error_types': error_types,
            'most_common_error': most_common_error[0],
            'most_common_error_count': most_common_error[1]
        }
