"""
证书探测服务
"""
import ssl
import socket
from datetime import datetime, timezone
from typing import Tuple
import logging

from cryptography import x509

from ..interfaces import CertificateProberInterface
from ..models import SiteProbeResult
from .error_handler import ProbeError

DEFAULT_PORT = 443
DEFAULT_TIMEOUT = 10.0


def parse_site(site: str) -> Tuple[str, int]:
    """
    解析站点标识为主机和端口

    支持 host、host:port 和 [IPv6]:port 三种写法，未指定端口时使用 443。

    Args:
        site: 站点标识

    Returns:
        Tuple[str, int]: (主机, 端口)

    Raises:
        ProbeError: 端口格式无效
    """
    site = site.strip()
    host, port_str = site, ""

    if site.startswith("["):
        end_bracket = site.find("]")
        if end_bracket == -1:
            raise ProbeError(site, "IPv6地址格式无效，应为 [address]:port")
        host = site[1:end_bracket]
        remainder = site[end_bracket + 1:]
        if remainder:
            if not remainder.startswith(":"):
                raise ProbeError(site, "IPv6地址格式无效，应为 [address]:port")
            port_str = remainder[1:]
    elif site.count(":") == 1:
        host, port_str = site.split(":")
    # 多个冒号且无方括号时按裸 IPv6 地址处理

    if not host:
        raise ProbeError(site, "主机名为空")

    if not port_str:
        return host, DEFAULT_PORT

    if not port_str.isdigit() or not 0 < int(port_str) < 65536:
        raise ProbeError(site, f"端口无效: {port_str}")

    return host, int(port_str)


class CertificateProber(CertificateProberInterface):
    """证书探测器实现"""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        """
        初始化证书探测器

        Args:
            timeout: 连接及握手超时时间（秒）
        """
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    def probe(self, site: str) -> SiteProbeResult:
        """
        探测单个站点

        Args:
            site: 站点标识（host 或 host:port）

        Returns:
            SiteProbeResult: 探测结果，失败时带有错误信息
        """
        try:
            expiry_date = self.get_expiration_date(site)
        except ProbeError as e:
            self.logger.debug(f"站点 {site} 探测失败: {e.message}")
            return SiteProbeResult(site=site, error_message=e.message, error=e)

        return SiteProbeResult(site=site, expiry_date=expiry_date)

    def get_expiration_date(self, site: str) -> datetime:
        """
        读取站点叶子证书的过期时间

        Args:
            site: 站点标识

        Returns:
            datetime: 过期时间（UTC）

        Raises:
            ProbeError: 连接失败、握手失败或服务器未提供证书
        """
        host, port = parse_site(site)

        try:
            der_cert = self._get_peer_certificate(host, port)
        except (OSError, ssl.SSLError, ValueError) as e:
            raise ProbeError(site, f"{type(e).__name__}: {e}") from e

        if not der_cert:
            raise ProbeError(site, "no certificate found")

        return self._parse_expiry_date(site, der_cert)

    def _create_context(self) -> ssl.SSLContext:
        """
        创建不校验证书的TLS上下文

        证书已过期或自签名时也必须能读取到证书，因此关闭证书链和主机名校验。

        Returns:
            ssl.SSLContext: TLS上下文
        """
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE  # nosec B501
        return context

    def _get_peer_certificate(self, host: str, port: int) -> bytes:
        """
        建立连接并获取服务器提供的叶子证书（DER格式）

        Args:
            host: 主机
            port: 端口

        Returns:
            bytes: DER编码的证书，服务器未提供时为空
        """
        context = self._create_context()

        with socket.create_connection((host, port), timeout=self.timeout) as sock:
            with context.wrap_socket(sock, server_hostname=host) as ssock:
                # CERT_NONE 下 getpeercert() 只返回空字典，需读取二进制证书
                return ssock.getpeercert(binary_form=True)

    def _parse_expiry_date(self, site: str, der_cert: bytes) -> datetime:
        """
        解析证书过期时间

        Args:
            site: 站点标识
            der_cert: DER编码的证书

        Returns:
            datetime: 过期时间（UTC）
        """
        try:
            cert = x509.load_der_x509_certificate(der_cert)
        except ValueError as e:
            raise ProbeError(site, f"证书解析失败: {e}") from e

        expiry_date = cert.not_valid_after_utc
        if expiry_date.tzinfo is None:
            expiry_date = expiry_date.replace(tzinfo=timezone.utc)
        return expiry_date
