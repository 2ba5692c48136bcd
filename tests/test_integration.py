"""
集成测试：本地TLS服务 + 真实探测
"""
import pytest
import socket
import ssl
import threading
from unittest.mock import MagicMock
from datetime import datetime, timezone, timedelta

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from cert_watch.services.cert_prober import CertificateProber
from cert_watch.services.error_handler import ProbeError
from cert_watch.services.group_evaluator import GroupEvaluator
from cert_watch.services.logger import LoggerService
from cert_watch.models import Severity, Status, WatchGroup


NOW = datetime(2024, 1, 10, tzinfo=timezone.utc)


def write_self_signed(tmp_path, name, not_after):
    """生成指定过期时间的自签名证书"""
    key = ec.generate_private_key(ec.SECP256R1())
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, name)])
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_after - timedelta(days=365))
        .not_valid_after(not_after)
        .sign(key, hashes.SHA256())
    )

    cert_path = tmp_path / f"{name}.crt"
    key_path = tmp_path / f"{name}.key"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption()
    ))
    return str(cert_path), str(key_path)


def start_server(handler):
    """在后台线程中监听本地端口，返回 (端口, 关闭函数)"""
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen()

    def serve():
        while True:
            try:
                conn, _ = listener.accept()
            except OSError:
                return
            conn.settimeout(5)
            try:
                handler(conn)
            except OSError:
                pass
            finally:
                conn.close()

    threading.Thread(target=serve, daemon=True).start()
    return listener.getsockname()[1], listener.close


@pytest.fixture
def tls_server(tmp_path):
    """启动使用给定证书的TLS服务"""
    closers = []

    def factory(name, not_after):
        cert_path, key_path = write_self_signed(tmp_path, name, not_after)
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        context.load_cert_chain(cert_path, key_path)

        def handle(conn):
            with context.wrap_socket(conn, server_side=True) as tls:
                tls.recv(1)

        port, close = start_server(handle)
        closers.append(close)
        return port

    yield factory

    for close in closers:
        close()


@pytest.fixture
def plain_server():
    """启动不支持TLS、收到连接后立即关闭的服务"""
    port, close = start_server(lambda conn: None)
    yield port
    close()


@pytest.fixture
def closed_port():
    """获取一个没有服务监听的端口"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


class TestProberIntegration:
    """证书探测集成测试类"""

    def setup_method(self):
        """测试前准备"""
        self.prober = CertificateProber(timeout=5)

    def test_reads_expired_self_signed_certificate(self, tls_server):
        """测试能读取已过期的自签名证书"""
        not_after = datetime(2024, 1, 1, tzinfo=timezone.utc)
        port = tls_server("expired.test", not_after)

        assert self.prober.get_expiration_date(f"127.0.0.1:{port}") == not_after

    def test_connection_refused(self, closed_port):
        with pytest.raises(ProbeError) as exc_info:
            self.prober.get_expiration_date(f"127.0.0.1:{closed_port}")

        assert isinstance(exc_info.value.__cause__, OSError)

    def test_non_tls_service(self, plain_server):
        """测试非TLS服务导致握手失败"""
        result = self.prober.probe(f"127.0.0.1:{plain_server}")

        assert result.is_reachable is False


class TestSweepIntegration:
    """完整巡检集成测试类"""

    def test_sweep(self, tls_server, closed_port):
        """测试包含过期、即将过期、健康和不可达站点的巡检"""
        expired = tls_server("expired.test", datetime(2024, 1, 1, tzinfo=timezone.utc))
        soon = tls_server("soon.test", datetime(2024, 1, 14, 12, tzinfo=timezone.utc))
        healthy = tls_server("healthy.test", datetime(2025, 1, 1, tzinfo=timezone.utc))

        groups = [
            WatchGroup(
                name="local",
                redline=7,
                sites=(
                    f"127.0.0.1:{expired}",
                    f"127.0.0.1:{closed_port}",
                    f"127.0.0.1:{healthy}",
                    f"127.0.0.1:{soon}",
                )
            ),
            WatchGroup(name="healthy-only", redline=7, sites=(f"127.0.0.1:{healthy}",)),
        ]

        notifier = MagicMock()
        evaluator = GroupEvaluator(
            prober=CertificateProber(timeout=5),
            logger_service=LoggerService(logger_name="integration_test"),
            clock=lambda: NOW,
            notifier_factory=lambda group: notifier,
            workers=2
        )

        result = evaluator.run_sweep(groups)

        local, healthy_only = result.reports
        assert [c.status for c in local.classifications] == [
            Status.EXPIRED, Status.UNREACHABLE, Status.HEALTHY, Status.EXPIRING_SOON
        ]
        assert local.classifications[0].days_left == -9
        assert local.classifications[3].days_left == 4
        assert local.alerts == [
            f"❗ 证书已过期: 127.0.0.1:{expired} (到期日: 2024-01-01)",
            f"❗ 检测失败: 127.0.0.1:{closed_port}",
            f"⚠️ 证书即将过期: 127.0.0.1:{soon} 还有 4 天 (到期日: 2024-01-14)",
        ]
        assert local.severity is Severity.WARNING
        assert healthy_only.severity is Severity.INFO
        assert healthy_only.message == "✅ [2024-01-10] 组 healthy-only 的证书监控正常，共 1 个"
        assert notifier.send.call_count == 2
        assert result.all_delivered is True

    def test_refused_connection_in_error_statistics(self, closed_port):
        """测试真实连接被拒绝时计入执行摘要的错误统计"""
        logger_service = LoggerService(logger_name="integration_errors")
        evaluator = GroupEvaluator(
            prober=CertificateProber(timeout=5),
            logger_service=logger_service,
            clock=lambda: NOW,
            notifier_factory=lambda group: MagicMock()
        )

        evaluator.run_sweep([
            WatchGroup(name="down", redline=7, sites=(f"127.0.0.1:{closed_port}",))
        ])

        summary = logger_service.get_execution_summary()
        assert summary['failed_checks'] == 1
        assert summary['error_statistics']['total_errors'] == 1
        assert summary['error_statistics']['error_types'] == {'ConnectionRefusedError': 1}
        assert summary['errors'][0]['site'] == f"127.0.0.1:{closed_port}"
